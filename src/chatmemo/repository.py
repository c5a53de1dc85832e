"""Conversation repository: the only writer of conversation and message rows."""

from collections import defaultdict
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from sqlalchemy import Engine, delete, func, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from chatmemo.db.models import ConversationRow, MessageRow
from chatmemo.db.schema import FTS_TABLE
from chatmemo.exceptions import StorageError, TokenizationError
from chatmemo.indexer import IndexSynchronizer
from chatmemo.logging import get_logger, log_conversation_saved
from chatmemo.models import Conversation, ConversationSummary, Message, StorageStats

logger = get_logger("chatmemo.repository")


def _summary_from_row(row: ConversationRow) -> ConversationSummary:
    return ConversationSummary(
        id=row.id,
        platform=row.platform,
        title=row.title,
        url=row.url,
        created_at=row.created_at,
        updated_at=row.updated_at,
        message_count=row.message_count or 0,
    )


def _message_from_row(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        sender=row.sender,
        content=row.content or "",
        thinking=row.thinking,
        position=row.position if row.position is not None else 0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _conversation_from_rows(
    row: ConversationRow, message_rows: Iterable[MessageRow]
) -> Conversation:
    summary = _summary_from_row(row)
    return Conversation(
        **summary.model_dump(),
        messages=[_message_from_row(m) for m in message_rows],
    )


class ConversationRepository:
    """Transactional upsert and retrieval of conversations and their messages."""

    def __init__(
        self,
        engine: Engine,
        indexer: IndexSynchronizer,
        db_path: Path,
        reindex_on_content_change: bool = False,
    ) -> None:
        self.engine = engine
        self.indexer = indexer
        self.db_path = Path(db_path)
        self.reindex_on_content_change = reindex_on_content_change
        self.session_factory = sessionmaker(
            bind=engine,
            expire_on_commit=False,
            autoflush=False,
        )

    # --- Writes ---

    def save_conversation(self, conversation: Conversation) -> bool:
        """Upsert a conversation and all of its messages atomically.

        New messages get an index entry in the same transaction. Messages
        that already exist keep their index entry even if their content
        changed, unless reindex_on_content_change is enabled.

        Args:
            conversation: Conversation with zero or more messages

        Returns:
            True once the transaction has committed

        Raises:
            StorageError: On any database fault; nothing is persisted
            TokenizationError: If a new message cannot be tokenized; nothing is persisted
        """
        message_count = len(conversation.messages)
        indexed = 0

        try:
            with self.session_factory.begin() as session:
                stmt = sqlite_insert(ConversationRow.__table__).values(
                    id=conversation.id,
                    platform=conversation.platform,
                    title=conversation.title,
                    url=conversation.url,
                    created_at=conversation.created_at,
                    updated_at=conversation.updated_at,
                    message_count=message_count,
                )
                # platform and created_at are fixed at first insert
                stmt = stmt.on_conflict_do_update(
                    index_elements=["id"],
                    set_={
                        "title": stmt.excluded.title,
                        "url": stmt.excluded.url,
                        "updated_at": stmt.excluded.updated_at,
                        "message_count": stmt.excluded.message_count,
                    },
                )
                session.execute(stmt)

                for message in conversation.messages:
                    if self._upsert_message(session, conversation.id, message):
                        indexed += 1
        except SQLAlchemyError as e:
            logger.error(
                "conversation_save_failed",
                conversation_id=conversation.id,
                error=str(e),
                exc_info=True,
            )
            raise StorageError(f"Failed to save conversation {conversation.id}: {e}") from e
        except TokenizationError as e:
            logger.error(
                "conversation_save_failed",
                conversation_id=conversation.id,
                message_id=e.message_id,
                error=e.reason,
            )
            raise

        log_conversation_saved(
            logger,
            conversation_id=conversation.id,
            message_count=message_count,
            indexed_count=indexed,
        )
        return True

    def _upsert_message(self, session: Session, conversation_id: str, message: Message) -> bool:
        """Upsert one message row; returns True if a new row was created."""
        existing = session.execute(
            text("SELECT rowid AS rowid, content FROM messages WHERE id = :id"),
            {"id": message.id},
        ).first()

        stmt = sqlite_insert(MessageRow.__table__).values(
            id=message.id,
            conversation_id=conversation_id,
            sender=message.sender,
            content=message.content,
            thinking=message.thinking or "",
            position=message.position,
            created_at=message.created_at,
            updated_at=message.updated_at,
        )
        # sender, conversation_id and created_at are immutable after creation
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "content": stmt.excluded.content,
                "thinking": stmt.excluded.thinking,
                "position": stmt.excluded.position,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        session.execute(stmt)

        conn = session.connection()
        if existing is None:
            rowid = session.execute(
                text("SELECT rowid FROM messages WHERE id = :id"),
                {"id": message.id},
            ).scalar_one()
            self.indexer.index_one(conn, rowid, message.id, message.content)
            return True

        if self.reindex_on_content_change and existing.content != message.content:
            self.indexer.replace_one(conn, existing.rowid, message.id, message.content)
        return False

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation; its messages and index entries cascade.

        Returns:
            True if a conversation was deleted, False if none matched
        """
        try:
            with self.session_factory.begin() as session:
                result = session.execute(
                    delete(ConversationRow)
                    .where(ConversationRow.id == conversation_id)
                    .execution_options(synchronize_session=False)
                )
                deleted = result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error("conversation_delete_failed", conversation_id=conversation_id, error=str(e))
            raise StorageError(f"Failed to delete conversation {conversation_id}: {e}") from e

        logger.info("conversation_deleted", conversation_id=conversation_id, deleted=deleted)
        return deleted

    def import_conversations(self, conversations: Iterable[Conversation]) -> int:
        """Save each conversation (e.g. from an export); returns how many were saved."""
        count = 0
        for conversation in conversations:
            self.save_conversation(conversation)
            count += 1
        logger.info("conversations_imported", count=count)
        return count

    def clear_all_data(self) -> None:
        """Remove every message, conversation and index entry."""
        try:
            with self.session_factory.begin() as session:
                # Cascade would handle messages; deleted explicitly for clarity
                session.execute(delete(MessageRow).execution_options(synchronize_session=False))
                session.execute(delete(ConversationRow).execution_options(synchronize_session=False))
                session.execute(text(f"DELETE FROM {FTS_TABLE}"))
        except SQLAlchemyError as e:
            logger.error("clear_all_data_failed", error=str(e), exc_info=True)
            raise StorageError(f"Failed to clear data: {e}") from e

        logger.warning("all_data_cleared")

    # --- Reads ---

    @contextmanager
    def _reading(self, operation: str) -> Iterator[Session]:
        """Open a read session; database faults surface as StorageError."""
        try:
            with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("storage_read_failed", operation=operation, error=str(e))
            raise StorageError(f"{operation} failed: {e}") from e

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation with its messages ordered by position."""
        with self._reading("get_conversation") as session:
            row = session.get(ConversationRow, conversation_id)
            if row is None:
                return None

            message_rows = session.scalars(
                select(MessageRow)
                .where(MessageRow.conversation_id == conversation_id)
                .order_by(MessageRow.position.asc())
            ).all()

        logger.debug(
            "conversation_retrieved",
            conversation_id=conversation_id,
            message_count=len(message_rows),
        )
        return _conversation_from_rows(row, message_rows)

    def find_by_url(self, url: str) -> Optional[Conversation]:
        """Get the conversation captured from url, if any."""
        with self._reading("find_by_url") as session:
            conversation_id = session.scalar(
                select(ConversationRow.id).where(ConversationRow.url == url).limit(1)
            )
        if conversation_id is None:
            return None
        return self.get_conversation(conversation_id)

    def get_conversations_by_platform(
        self, platform: str, limit: int = 50
    ) -> list[ConversationSummary]:
        """List a platform's conversations, most recently updated first."""
        with self._reading("get_conversations_by_platform") as session:
            rows = session.scalars(
                select(ConversationRow)
                .where(ConversationRow.platform == platform)
                .order_by(ConversationRow.updated_at.desc())
                .limit(limit)
            ).all()
        return [_summary_from_row(row) for row in rows]

    def get_recent_conversations(self, limit: int = 20) -> list[ConversationSummary]:
        """List conversations across all platforms, most recently updated first."""
        with self._reading("get_recent_conversations") as session:
            rows = session.scalars(
                select(ConversationRow)
                .order_by(ConversationRow.updated_at.desc())
                .limit(limit)
            ).all()
        return [_summary_from_row(row) for row in rows]

    def get_conversation_count_by_platform(self) -> dict[str, int]:
        """Count conversations per platform."""
        with self._reading("get_conversation_count_by_platform") as session:
            rows = session.execute(
                select(ConversationRow.platform, func.count())
                .group_by(ConversationRow.platform)
            ).all()
        return {platform: count for platform, count in rows}

    def get_storage_stats(self) -> StorageStats:
        """Get row counts and the on-disk size of the database (including its WAL file)."""
        with self._reading("get_storage_stats") as session:
            conversation_count = session.scalar(
                select(func.count()).select_from(ConversationRow)
            )
            message_count = session.scalar(select(func.count()).select_from(MessageRow))

        # Uncheckpointed pages live in the -wal file
        wal_path = self.db_path.with_name(self.db_path.name + "-wal")
        try:
            size_in_bytes = self.db_path.stat().st_size
            if wal_path.exists():
                size_in_bytes += wal_path.stat().st_size
        except OSError as e:
            raise StorageError(f"Cannot read database file size: {e}") from e

        return StorageStats(
            conversation_count=conversation_count or 0,
            message_count=message_count or 0,
            size_in_bytes=size_in_bytes,
            size_in_mb=round(size_in_bytes / (1024 * 1024), 2),
        )

    def export_conversations(self) -> list[Conversation]:
        """Dump every conversation with its messages, most recently updated first."""
        with self._reading("export_conversations") as session:
            rows = session.scalars(
                select(ConversationRow).order_by(ConversationRow.updated_at.desc())
            ).all()
            message_rows = session.scalars(
                select(MessageRow).order_by(
                    MessageRow.conversation_id, MessageRow.position.asc()
                )
            ).all()

        messages_by_conversation: dict[str, list[MessageRow]] = defaultdict(list)
        for message_row in message_rows:
            messages_by_conversation[message_row.conversation_id].append(message_row)

        conversations = [
            _conversation_from_rows(row, messages_by_conversation.get(row.id, []))
            for row in rows
        ]
        logger.info("conversations_exported", count=len(conversations))
        return conversations
