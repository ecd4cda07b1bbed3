"""HTTP server runner for ShopStream.

Starts uvicorn with the ShopStream app. The app itself runs the guest cart
sweeper, in reload mode as well; ``--purge-interval`` sets how often it
sweeps.

Usage:
    python src/server.py                        # Serve on 0.0.0.0:8000
    python src/server.py --port 9000 --reload   # Development
    python src/server.py --purge-interval 600   # Sweep guest carts every 10 minutes
"""

import argparse
import os

import uvicorn

from shared.utils.logging import configure_logging


def main():
    parser = argparse.ArgumentParser(description="ShopStream HTTP server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    parser.add_argument(
        "--purge-interval",
        type=float,
        default=None,
        help="Seconds between guest cart sweeps, 0 to disable (default: SHOPSTREAM_GUEST_CART_SWEEP_SECONDS or 3600)",
    )
    args = parser.parse_args()

    configure_logging()

    # The reloader imports the app in a child process, which only sees the environment.
    if args.purge_interval is not None:
        os.environ["SHOPSTREAM_GUEST_CART_SWEEP_SECONDS"] = str(args.purge_interval)

    uvicorn.run("app:app", host=args.host, port=args.port, reload=args.reload, log_config=None)


if __name__ == "__main__":
    main()
