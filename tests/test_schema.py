"""Tests for schema creation."""

import pytest
from sqlalchemy import text

from chatmemo.db.schema import SCHEMA_VERSION, ensure_schema
from chatmemo.db.session import create_store_engine
from chatmemo.exceptions import StorageError
from chatmemo.store import ConversationStore


class TestEnsureSchema:
    """Tests for ensure_schema()."""

    def test_creates_tables_indexes_and_trigger(self, tmp_path):
        """All row tables, indexes, the FTS table and its trigger exist."""
        engine = create_store_engine(tmp_path / "schema.db")
        try:
            ensure_schema(engine)
            with engine.connect() as conn:
                names = set(conn.execute(text("SELECT name FROM sqlite_master")).scalars())
        finally:
            engine.dispose()

        assert {"conversations", "messages", "messages_fts"} <= names
        assert {
            "idx_messages_conversation_id",
            "idx_conversations_url",
            "idx_conversations_platform",
            "messages_fts_delete",
        } <= names

    def test_is_idempotent_and_keeps_data(self, settings, make_conversation):
        """Running schema setup again leaves existing rows alone."""
        with ConversationStore(settings=settings) as store:
            store.save_conversation(make_conversation(messages=[("user", "survivor")]))
            ensure_schema(store.indexer.engine)
            ensure_schema(store.indexer.engine)

            assert store.get_conversation("conv-1").messages[0].content == "survivor"
            assert store.advanced_search({"keyword": "survivor"}).results

    def test_enables_wal_and_foreign_keys(self, tmp_path):
        """WAL journaling and foreign key enforcement are on."""
        engine = create_store_engine(tmp_path / "wal.db")
        try:
            ensure_schema(engine)
            with engine.connect() as conn:
                journal_mode = conn.exec_driver_sql("PRAGMA journal_mode").scalar()
                foreign_keys = conn.exec_driver_sql("PRAGMA foreign_keys").scalar()
                user_version = conn.exec_driver_sql("PRAGMA user_version").scalar()
        finally:
            engine.dispose()

        assert journal_mode == "wal"
        assert foreign_keys == 1
        assert user_version == SCHEMA_VERSION

    def test_rejects_newer_schema_version(self, tmp_path):
        """A database from a newer release is not opened."""
        engine = create_store_engine(tmp_path / "future.db")
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
                conn.commit()

            with pytest.raises(StorageError, match="newer"):
                ensure_schema(engine)
        finally:
            engine.dispose()

    def test_message_rowid_is_an_explicit_integer_key(self, tmp_path):
        """messages.seq is the INTEGER PRIMARY KEY that aliases the rowid."""
        engine = create_store_engine(tmp_path / "keys.db")
        try:
            ensure_schema(engine)
            with engine.connect() as conn:
                columns = {
                    row.name: row for row in conn.exec_driver_sql("PRAGMA table_info(messages)")
                }
        finally:
            engine.dispose()

        assert columns["seq"].type == "INTEGER"
        assert columns["seq"].pk == 1
        assert columns["id"].pk == 0

    def test_index_survives_vacuum(self, store, make_conversation):
        """VACUUM keeps index entries pointing at the right messages."""
        for conversation_id, word in (("a", "alpha"), ("b", "bravo"), ("c", "charlie")):
            store.save_conversation(
                make_conversation(conversation_id, messages=[("user", f"{word} message")])
            )
        store.delete_conversation("b")

        with store.indexer.engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            conn.exec_driver_sql("VACUUM")

        hits = store.advanced_search({"keyword": "charlie"}).results
        assert [hit.id for hit in hits] == ["c-m0"]
        assert hits[0].content == "charlie message"

    def test_fts_table_stores_its_own_tokens(self, tmp_path):
        """The full-text table keeps its own tokens column, not external content."""
        engine = create_store_engine(tmp_path / "fts.db")
        try:
            ensure_schema(engine)
            with engine.connect() as conn:
                ddl = conn.execute(
                    text("SELECT sql FROM sqlite_master WHERE name = 'messages_fts'")
                ).scalar_one()
        finally:
            engine.dispose()

        assert "fts5(tokens)" in ddl
        assert "content=" not in ddl
