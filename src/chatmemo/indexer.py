"""Keeps the full-text index in step with message rows.

New messages are indexed inside the save transaction that creates them.
Content edits made by later saves are not picked up here; reindex_all()
rebuilds every entry from the current message content.
"""

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import SQLAlchemyError

from chatmemo.db.schema import FTS_TABLE
from chatmemo.exceptions import StorageError, TokenizationError
from chatmemo.logging import get_logger, log_reindex_completed
from chatmemo.tokenizer import Tokenizer

logger = get_logger("chatmemo.indexer")

INSERT_ENTRY_SQL = text(f"INSERT INTO {FTS_TABLE} (rowid, tokens) VALUES (:rowid, :tokens)")
REPLACE_ENTRY_SQL = text(
    f"INSERT OR REPLACE INTO {FTS_TABLE} (rowid, tokens) VALUES (:rowid, :tokens)"
)


class IndexSynchronizer:
    """Writes tokenized message content into the FTS5 index."""

    def __init__(self, engine: Engine, tokenizer: Tokenizer) -> None:
        self.engine = engine
        self.tokenizer = tokenizer

    def tokenize(self, message_id: str, content: str | None) -> str:
        """Run the tokenizer, turning any failure into TokenizationError."""
        try:
            return self.tokenizer(content or "") or ""
        except Exception as e:
            raise TokenizationError(message_id, str(e)) from e

    def index_one(
        self,
        conn: Connection,
        rowid: int,
        message_id: str,
        content: str | None,
    ) -> None:
        """Create the index entry for a newly inserted message.

        Runs on the caller's connection so the entry commits or rolls back
        together with the message row.

        Args:
            conn: Connection with the save transaction open
            rowid: SQLite rowid of the message row
            message_id: Message ID (for error reporting)
            content: Message content to tokenize

        Raises:
            TokenizationError: If the tokenizer fails; aborts the save
        """
        tokens = self.tokenize(message_id, content)
        conn.execute(INSERT_ENTRY_SQL, {"rowid": rowid, "tokens": tokens})

    def replace_one(
        self,
        conn: Connection,
        rowid: int,
        message_id: str,
        content: str | None,
    ) -> None:
        """Overwrite the index entry of an existing message."""
        tokens = self.tokenize(message_id, content)
        conn.execute(REPLACE_ENTRY_SQL, {"rowid": rowid, "tokens": tokens})

    def reindex_all(self) -> int:
        """Rebuild the index entry of every message in one transaction.

        Messages whose content cannot be tokenized are skipped with a
        warning and keep whatever entry they had before.

        Returns:
            Number of messages indexed

        Raises:
            StorageError: If the database fails; nothing is committed
        """
        indexed = 0
        skipped = 0
        try:
            with self.engine.begin() as conn:
                # Entries left behind by rows deleted outside the trigger
                conn.execute(
                    text(
                        f"DELETE FROM {FTS_TABLE} "
                        "WHERE rowid NOT IN (SELECT rowid FROM messages)"
                    )
                )

                rows = conn.execute(text("SELECT rowid AS rowid, id, content FROM messages")).all()
                logger.info("reindex_started", total=len(rows))

                for row in rows:
                    try:
                        tokens = self.tokenize(row.id, row.content)
                    except TokenizationError as e:
                        skipped += 1
                        logger.warning(
                            "reindex_message_skipped",
                            message_id=row.id,
                            error=e.reason,
                        )
                        continue
                    conn.execute(REPLACE_ENTRY_SQL, {"rowid": row.rowid, "tokens": tokens})
                    indexed += 1
        except SQLAlchemyError as e:
            logger.error("reindex_failed", error=str(e), exc_info=True)
            raise StorageError(f"Re-indexing failed: {e}") from e

        log_reindex_completed(logger, total=indexed + skipped, indexed=indexed, skipped=skipped)
        return indexed
