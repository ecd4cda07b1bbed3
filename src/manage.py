"""ShopStream database management CLI.

Creates or drops the SQL schema: the product/stock tables used by the SQL
product repository, and the cart, order and low-stock alert tables of the
ordering domain. Reuses the setup_db/drop_db utilities in
``catalogue.utils.db`` and ``ordering.utils.db``.

Usage:
    python src/manage.py setup-db                          # Uses SHOPSTREAM_DATABASE_URL
    python src/manage.py drop-db --database-url sqlite:///shop.db
"""

import argparse
import sys


def _settings(database_url=None):
    from shared.config import CommerceSettings

    settings = CommerceSettings.from_env()
    url = database_url or settings.database_url
    if not url:
        print("No database configured: pass --database-url or set SHOPSTREAM_DATABASE_URL.")
        sys.exit(1)
    return settings.model_copy(update={"database_url": url})


def setup_database(database_url=None):
    """Create the product/stock and ordering tables."""
    from bootstrap import init_domain
    from catalogue.utils.db import make_engine, setup_db

    settings = _settings(database_url)
    print("Creating catalogue database schema...")
    setup_db(make_engine(settings.database_url))
    print("  catalogue schema ready.")

    print("Creating ordering database schema...")
    init_domain(settings)  # creates the ordering tables for a SQL database
    print("  ordering schema ready.")
    print("Done.")


def drop_database(database_url=None):
    """Drop the product/stock and ordering tables."""
    from bootstrap import init_domain
    from catalogue.utils.db import drop_db, make_engine
    from ordering.utils.db import drop_db as drop_ordering_db

    settings = _settings(database_url)
    print("Dropping catalogue database schema...")
    drop_db(make_engine(settings.database_url))
    print("  catalogue schema dropped.")

    print("Dropping ordering database schema...")
    drop_ordering_db(init_domain(settings))
    print("  ordering schema dropped.")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="ShopStream database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser("setup-db", help="Create all database tables")
    setup_parser.add_argument("--database-url", help="SQLAlchemy database URL (default: SHOPSTREAM_DATABASE_URL)")

    drop_parser = subparsers.add_parser("drop-db", help="Drop all database tables")
    drop_parser.add_argument("--database-url", help="SQLAlchemy database URL (default: SHOPSTREAM_DATABASE_URL)")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database(args.database_url)
    elif args.command == "drop-db":
        drop_database(args.database_url)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
