"""Database engine and table management."""

from pathlib import Path

from sqlalchemy import Engine, event
from sqlalchemy.engine import make_url
from sqlmodel import SQLModel, create_engine

# Register table metadata before create_all
from ideasystem import models  # noqa: F401


def _enable_foreign_keys(dbapi_conn, _connection_record):
    """Turn on SQLite foreign key enforcement for every new connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    database = url.database
    if database and database != ":memory:":
        Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """
    Create a SQLAlchemy engine with SQLite foreign keys enabled.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL
        **kwargs: Extra create_engine arguments (e.g. poolclass for tests)

    Returns:
        Configured Engine
    """
    _ensure_sqlite_directory(database_url)
    connect_args = kwargs.pop("connect_args", {"check_same_thread": False})
    engine = create_engine(
        database_url, echo=echo, connect_args=connect_args, **kwargs
    )

    # Register event listener to enforce cascades on each connection
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


def create_db_and_tables(engine: Engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)
