"""Record types for conversations and their messages."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _timestamp_to_str(value: Any) -> Any:
    """Store timestamps as ISO-8601 strings so they sort lexically."""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class Message(BaseModel):
    """A single message in a conversation."""

    id: str = Field(..., min_length=1, description="Stable message ID from the source platform")
    sender: str = Field(..., min_length=1, description="Author role, e.g. user or assistant")
    content: str = Field(default="", description="Message body (indexed for search)")
    thinking: Optional[str] = Field(default=None, description="Auxiliary reasoning text (not indexed)")
    position: int = Field(..., description="Display order within the conversation")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Any:
        return _timestamp_to_str(v)


class ConversationSummary(BaseModel):
    """Conversation metadata without its messages."""

    id: str = Field(..., min_length=1, description="Stable conversation ID")
    platform: str = Field(..., min_length=1, description="Source application: chatgpt, claude, gemini, ...")
    title: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    message_count: int = 0

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Any:
        return _timestamp_to_str(v)


class Conversation(ConversationSummary):
    """A conversation with its messages.

    message_count is derived from the message list on save; the value
    read back from storage reflects the most recent save call.
    """

    messages: list[Message] = Field(default_factory=list)


class StorageStats(BaseModel):
    """Row counts and on-disk size of the store."""

    conversation_count: int
    message_count: int
    size_in_bytes: int
    size_in_mb: float
