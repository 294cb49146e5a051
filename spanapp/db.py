"""SQLAlchemy database setup for Span Annotator."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

if TYPE_CHECKING:
    import sqlite3

#: The default database name.
DEFAULT_DB_NAME: Final[str] = "default.db"
#: The application folder name used under the platform config directory.
APP_FOLDER: Final[str] = "Span Annotator"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


def get_project_db_path() -> Path:
    """
    Get the path to the project database.

    - On Windows, the database is created in the user's
        ``AppData/Local/Span Annotator/projects`` directory.
    - On macOS, the database is created in the user's
        ``~/Library/Application Support/Span Annotator/projects`` directory.
    - On Linux, the database is created in the user's
        ``~/.config/Span Annotator/projects`` directory.
    - If the platform is not supported, raise a ValueError.

    Returns:
        Path to the database file

    """
    if sys.platform not in ["win32", "darwin", "linux"]:
        msg = f"Unsupported platform: {sys.platform}"
        raise ValueError(msg)
    if sys.platform == "win32":
        db_path = Path.home() / "AppData" / "Local" / APP_FOLDER / "projects"
    elif sys.platform == "darwin":
        db_path = (
            Path.home() / "Library" / "Application Support" / APP_FOLDER / "projects"
        )
    else:
        db_path = Path.home() / ".config" / APP_FOLDER / "projects"
    db_path.mkdir(parents=True, exist_ok=True)
    return db_path / DEFAULT_DB_NAME


def create_engine_with_path(db_path: Path | None = None) -> Engine:
    """
    Create SQLAlchemy engine with proper SQLite settings.

    Args:
        db_path: Optional path to database file. If None, uses default path.

    Returns:
        SQLAlchemy engine

    """
    if db_path is None:
        db_path = get_project_db_path()

    db_path.touch(exist_ok=True)

    # Saves of several documents run on worker threads
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(
        dbapi_conn: sqlite3.Connection | Any, _connection_record: Any
    ) -> None:
        """Set SQLite pragmas on connection."""
        cursor = cast("sqlite3.Cursor", dbapi_conn.cursor())
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def create_session_factory(db_path: Path | None = None) -> sessionmaker[Session]:
    """
    Create the schema if needed and return a session factory bound to it.

    Args:
        db_path: Optional path to database file. If None, uses default path.

    Returns:
        A configured :class:`~sqlalchemy.orm.sessionmaker`

    """
    engine = create_engine_with_path(db_path)
    # Import the models so their tables are registered on the metadata
    import spanapp.models  # noqa: F401, PLC0415

    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
