"""ConversationStore: the public entry point to the conversation store.

Owns the database engine and wires the repository, index synchronizer and
search engine together. Construct one per process, call open() at startup
and close() at shutdown (or use it as a context manager), and pass it to
the code that needs it.

Usage:
    from chatmemo import ConversationStore

    with ConversationStore(Path("~/.local/share/chatmemo").expanduser()) as store:
        store.save_conversation(conversation)
        outcome = store.advanced_search({"keyword": "migration"})
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError
from sqlalchemy import Engine

from chatmemo.config import Settings, get_settings
from chatmemo.db.schema import ensure_schema
from chatmemo.db.session import create_store_engine
from chatmemo.exceptions import StorageError
from chatmemo.indexer import IndexSynchronizer
from chatmemo.logging import get_logger, log_search_failed
from chatmemo.models import Conversation, ConversationSummary, StorageStats
from chatmemo.repository import ConversationRepository
from chatmemo.search.engine import SearchEngine
from chatmemo.search.schemas import SearchOutcome, SearchQuery
from chatmemo.tokenizer import Tokenizer, simple_tokenize

logger = get_logger("chatmemo.store")


class ConversationStore:
    """SQLite-backed conversation store with a full-text message index."""

    def __init__(
        self,
        data_dir: Path | None = None,
        tokenizer: Tokenizer | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the store (no I/O happens until open()).

        Args:
            data_dir: Writable directory for the database file. Created if
                missing. Defaults to settings.data_dir.
            tokenizer: Callable returning space-separated tokens. Defaults to
                simple_tokenize.
            settings: Settings instance; defaults to get_settings()
        """
        self.settings = settings or get_settings()
        self.data_dir = Path(data_dir).expanduser() if data_dir else self.settings.data_path
        self.db_path = self.data_dir / self.settings.database_name
        self.tokenizer = tokenizer or simple_tokenize

        self._engine: Optional[Engine] = None
        self._repository: Optional[ConversationRepository] = None
        self._indexer: Optional[IndexSynchronizer] = None
        self._search: Optional[SearchEngine] = None

    # --- Lifecycle ---

    def open(self) -> "ConversationStore":
        """Create the data directory and database schema, then connect."""
        if self._engine is not None:
            return self

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self.data_dir}: {e}") from e

        engine = create_store_engine(self.db_path)
        try:
            ensure_schema(engine)
        except StorageError:
            engine.dispose()
            raise

        self._engine = engine
        self._indexer = IndexSynchronizer(engine, self.tokenizer)
        self._repository = ConversationRepository(
            engine,
            self._indexer,
            self.db_path,
            reindex_on_content_change=self.settings.reindex_on_content_change,
        )
        self._search = SearchEngine(
            engine,
            self.tokenizer,
            snippet_length=self.settings.snippet_length,
            highlight=(self.settings.highlight_open, self.settings.highlight_close),
        )
        logger.info("store_opened", db_path=str(self.db_path))
        return self

    def close(self) -> None:
        """Release all database connections."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._repository = None
        self._indexer = None
        self._search = None
        logger.info("store_closed", db_path=str(self.db_path))

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def __enter__(self) -> "ConversationStore":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def repository(self) -> ConversationRepository:
        if self._repository is None:
            raise StorageError("Store is not open")
        return self._repository

    @property
    def indexer(self) -> IndexSynchronizer:
        if self._indexer is None:
            raise StorageError("Store is not open")
        return self._indexer

    @property
    def search_engine(self) -> SearchEngine:
        if self._search is None:
            raise StorageError("Store is not open")
        return self._search

    # --- Conversations ---

    def save_conversation(self, conversation: Conversation | dict[str, Any]) -> bool:
        """Upsert a conversation and its messages in one transaction."""
        if not isinstance(conversation, Conversation):
            conversation = Conversation.model_validate(conversation)
        return self.repository.save_conversation(conversation)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.repository.get_conversation(conversation_id)

    def find_by_url(self, url: str) -> Optional[Conversation]:
        return self.repository.find_by_url(url)

    def delete_conversation(self, conversation_id: str) -> bool:
        return self.repository.delete_conversation(conversation_id)

    def get_conversations_by_platform(
        self, platform: str, limit: int = 50
    ) -> list[ConversationSummary]:
        return self.repository.get_conversations_by_platform(platform, limit)

    def get_conversation_count_by_platform(self) -> dict[str, int]:
        return self.repository.get_conversation_count_by_platform()

    def get_recent_conversations(self, limit: int = 20) -> list[ConversationSummary]:
        return self.repository.get_recent_conversations(limit)

    def get_storage_stats(self) -> StorageStats:
        return self.repository.get_storage_stats()

    def export_conversations(self) -> list[Conversation]:
        return self.repository.export_conversations()

    def import_conversations(self, conversations: Iterable[Conversation | dict[str, Any]]) -> int:
        """Restore conversations, e.g. from export_conversations() output."""
        return self.repository.import_conversations(
            c if isinstance(c, Conversation) else Conversation.model_validate(c)
            for c in conversations
        )

    def clear_all_data(self) -> None:
        self.repository.clear_all_data()

    # --- Search and indexing ---

    def advanced_search(self, query: SearchQuery | dict[str, Any]) -> SearchOutcome:
        """Search messages by keyword with optional platform/date/sender filters.

        Invalid query payloads are reported as a failed outcome, like any
        other search failure.
        """
        if not isinstance(query, SearchQuery):
            try:
                query = SearchQuery.model_validate(query)
            except ValidationError as e:
                keyword = str(query.get("keyword", "")) if isinstance(query, dict) else ""
                log_search_failed(logger, keyword, f"invalid query: {e.error_count()} errors")
                return SearchOutcome.failed(f"Invalid search query: {e}")
        return self.search_engine.search(query)

    def reindex_messages(self) -> int:
        """Rebuild the full-text index from current message content."""
        return self.indexer.reindex_all()
