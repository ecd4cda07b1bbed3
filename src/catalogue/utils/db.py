from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from catalogue.product.sql import metadata


def make_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url)


def setup_db(engine: Engine):
    """Setup database schema"""
    metadata.create_all(engine)


def drop_db(engine: Engine):
    """Drop database schema"""
    metadata.drop_all(engine)
