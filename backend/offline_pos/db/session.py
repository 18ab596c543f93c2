"""Database session management."""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from offline_pos.db.base import Base


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine - handle SQLite specially for check_same_thread."""
    connect_args = {}
    pool_config = {}

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        pool_config = {"pool_pre_ping": True}
        _ensure_sqlite_directory(database_url)
    else:
        pool_config = {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_pre_ping": True,    # Test connections before using them
            "pool_recycle": 3600,     # Recycle connections after 1 hour
        }

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=echo,
        **pool_config,
    )

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            # WAL + synchronous=FULL: a committed enqueue survives a crash
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if ":memory:" not in database_url:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=FULL")
            cursor.close()

    return engine


def _ensure_sqlite_directory(database_url: str) -> None:
    path = database_url.split("///", 1)[-1]
    if path and ":memory:" not in path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create tables if they don't exist."""
    # Import models so they register with Base.metadata
    import offline_pos.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
