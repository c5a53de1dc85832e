"""Exception types raised by the conversation store."""


class ChatMemoError(Exception):
    """Base class for all chatmemo errors."""


class StorageError(ChatMemoError):
    """Raised when the database rejects or fails a read or write.

    Covers disk/IO faults and constraint violations. The enclosing
    transaction has already been rolled back when this is raised.
    """


class TokenizationError(ChatMemoError):
    """Raised when the tokenizer fails on a message being indexed."""

    def __init__(self, message_id: str, reason: str) -> None:
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Failed to tokenize message {message_id}: {reason}")
