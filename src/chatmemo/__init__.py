"""chatmemo - conversation store with a synchronized full-text search index."""

__version__ = "0.1.0"

from chatmemo.models import Conversation, ConversationSummary, Message, StorageStats
from chatmemo.store import ConversationStore

__all__ = [
    "Conversation",
    "ConversationStore",
    "ConversationSummary",
    "Message",
    "StorageStats",
    "__version__",
]
