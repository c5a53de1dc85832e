"""Tests for the index synchronizer's bulk rebuild."""

import pytest
from sqlalchemy import text

from chatmemo.exceptions import StorageError
from chatmemo.tokenizer import simple_tokenize


def _index_size(store) -> int:
    with store.indexer.engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM messages_fts")).scalar_one()


class TestReindexAll:
    """Tests for reindex_messages() / IndexSynchronizer.reindex_all()."""

    def test_reindex_covers_every_message(self, store, make_conversation):
        """N messages produce exactly N index entries and a count of N."""
        store.save_conversation(make_conversation("a", messages=[("user", "one"), ("assistant", "two")]))
        store.save_conversation(make_conversation("b", messages=[("user", "three")]))

        assert store.reindex_messages() == 3
        assert _index_size(store) == 3

    def test_reindex_empty_store(self, store):
        """Reindexing with no messages is a no-op returning 0."""
        assert store.reindex_messages() == 0
        assert _index_size(store) == 0

    def test_reindex_is_repeatable(self, store, make_conversation):
        """Running twice does not duplicate entries."""
        store.save_conversation(make_conversation(messages=[("user", "one"), ("assistant", "two")]))

        store.reindex_messages()
        store.reindex_messages()

        assert _index_size(store) == 2
        assert len(store.advanced_search({"keyword": "one"}).results) == 1

    def test_reindex_drops_orphaned_entries(self, store, make_conversation):
        """Entries with no matching message row are removed."""
        store.save_conversation(make_conversation(messages=[("user", "real message")]))
        with store.indexer.engine.begin() as conn:
            conn.execute(text("INSERT INTO messages_fts (rowid, tokens) VALUES (9999, 'ghost')"))

        assert store.reindex_messages() == 1
        assert _index_size(store) == 1

    def test_tokenizer_failure_skips_message(self, store, make_conversation):
        """A message that cannot be tokenized is skipped; the rest are indexed."""
        store.save_conversation(
            make_conversation(messages=[("user", "fine"), ("assistant", "poison pill"), ("user", "also fine")])
        )

        def failing_tokenizer(content: str) -> str:
            if "poison" in content:
                raise ValueError("cannot segment")
            return simple_tokenize(content)

        store.indexer.tokenizer = failing_tokenizer

        assert store.reindex_messages() == 2
        # The skipped message keeps the entry it had before
        assert _index_size(store) == 3

    def test_storage_failure_propagates(self, store, make_conversation):
        """Database faults abort the rebuild with StorageError."""
        store.save_conversation(make_conversation(messages=[("user", "one")]))
        with store.indexer.engine.begin() as conn:
            conn.execute(text("DROP TABLE messages_fts"))

        with pytest.raises(StorageError):
            store.reindex_messages()


class TestIndexOnSave:
    """Tests for index entries written by save_conversation()."""

    def test_new_messages_get_one_entry_each(self, store, make_conversation):
        """Each inserted message gets exactly one index entry."""
        conversation = make_conversation(messages=[("user", "one"), ("assistant", "two")])
        store.save_conversation(conversation)
        store.save_conversation(conversation)

        assert _index_size(store) == 2

    def test_messages_added_later_are_indexed(self, store, make_conversation):
        """Messages appended in a later save become searchable."""
        store.save_conversation(make_conversation(messages=[("user", "first")]))
        store.save_conversation(make_conversation(messages=[("user", "first"), ("assistant", "second")]))

        assert _index_size(store) == 2
        assert len(store.advanced_search({"keyword": "second"}).results) == 1
