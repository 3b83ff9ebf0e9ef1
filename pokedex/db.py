"""
Database connection and setup
SQLite database with SQLAlchemy, used as the backing store for the Pokemon cache
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from pokedex.cache.core import Base


def create_cache_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for the cache database.

    SQLite connections are shared with the loader's background worker, so the
    same-thread check is disabled for sqlite URLs.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, echo=echo)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the given engine."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    Base.metadata.create_all(bind=engine)
