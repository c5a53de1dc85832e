"""SQLite engine factory using SQLAlchemy 2.0 patterns."""

from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    """Turn on foreign key enforcement (SQLite defaults it off per connection)."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store_engine(db_path: Path, echo: bool = False) -> Engine:
    """Create an engine bound to the SQLite file at db_path.

    Args:
        db_path: Database file location. Its parent directory must exist.
        echo: Log every SQL statement (debugging only)

    Returns:
        Engine with foreign keys enabled on every pooled connection
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=echo,
        # Search may run on a different thread from the writer
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine
