"""Schema creation for the conversation store.

Row tables come from the declarative models; the FTS5 index and its
cleanup trigger are plain DDL because SQLAlchemy has no construct for
virtual tables.
"""

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from chatmemo.db.base import Base
from chatmemo.db import models  # noqa: F401  (registers tables on Base.metadata)
from chatmemo.exceptions import StorageError
from chatmemo.logging import get_logger

logger = get_logger("chatmemo.db.schema")

SCHEMA_VERSION = 1

FTS_TABLE = "messages_fts"

# Keyed by messages.rowid. A standalone table rather than external-content
# over messages: messages has no tokens column, so FTS5 could not read old
# values back to replace or delete an entry. Storing the tokenized text here
# keeps INSERT OR REPLACE and DELETE working.
CREATE_FTS_SQL = f"""
CREATE VIRTUAL TABLE IF NOT EXISTS {FTS_TABLE} USING fts5(tokens)
"""

# Fires for direct deletes and for ON DELETE CASCADE from conversations
CREATE_FTS_DELETE_TRIGGER_SQL = f"""
CREATE TRIGGER IF NOT EXISTS messages_fts_delete AFTER DELETE ON messages
BEGIN
    DELETE FROM {FTS_TABLE} WHERE rowid = OLD.rowid;
END
"""


def ensure_schema(engine: Engine) -> None:
    """Create tables, indexes and the full-text index if they are missing.

    Safe to call on every startup; existing data is never touched.

    Raises:
        StorageError: If the database cannot be created, or was written by
            a newer schema version
    """
    try:
        with engine.connect() as conn:
            # Readers keep working while a save transaction is open
            conn.exec_driver_sql("PRAGMA journal_mode=WAL").scalar()
            current_version = conn.exec_driver_sql("PRAGMA user_version").scalar() or 0
            conn.commit()

        if current_version > SCHEMA_VERSION:
            raise StorageError(
                f"Database schema version {current_version} is newer than "
                f"supported version {SCHEMA_VERSION}"
            )

        Base.metadata.create_all(engine)

        with engine.begin() as conn:
            conn.execute(text(CREATE_FTS_SQL))
            conn.execute(text(CREATE_FTS_DELETE_TRIGGER_SQL))
            if current_version < SCHEMA_VERSION:
                conn.exec_driver_sql(f"PRAGMA user_version = {SCHEMA_VERSION}")
    except SQLAlchemyError as e:
        logger.error("schema_setup_failed", error=str(e), exc_info=True)
        raise StorageError(f"Failed to set up database schema: {e}") from e

    if current_version < SCHEMA_VERSION:
        logger.info(
            "schema_upgraded",
            from_version=current_version,
            to_version=SCHEMA_VERSION,
        )
