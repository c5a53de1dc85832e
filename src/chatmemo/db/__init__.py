"""Database module exports."""

from chatmemo.db.base import Base
from chatmemo.db.models import ConversationRow, MessageRow
from chatmemo.db.schema import FTS_TABLE, ensure_schema
from chatmemo.db.session import create_store_engine

__all__ = [
    "Base",
    "ConversationRow",
    "FTS_TABLE",
    "MessageRow",
    "create_store_engine",
    "ensure_schema",
]
