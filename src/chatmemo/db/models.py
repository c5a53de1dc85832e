"""SQLAlchemy 2.0 ORM models for the conversation store schema."""

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chatmemo.db.base import Base


class ConversationRow(Base):
    """Conversation metadata, one row per conversation."""

    __tablename__ = "conversations"

    # Primary key: caller-supplied, never generated here
    id: Mapped[str] = mapped_column(String, primary_key=True)

    # Source application: chatgpt, claude, gemini, ...
    platform: Mapped[str] = mapped_column(String, nullable=False)

    title: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Page the conversation was captured from (lookup-by-origin)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ISO-8601 strings
    created_at: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[str | None] = mapped_column(String, nullable=True)

    # Length of the message list from the most recent save
    message_count: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        Index("idx_conversations_url", "url"),
        Index("idx_conversations_platform", "platform"),
    )

    def __repr__(self) -> str:
        return f"<ConversationRow(id={self.id}, platform={self.platform})>"


class MessageRow(Base):
    """A message belonging to a conversation.

    seq is an INTEGER PRIMARY KEY, so it aliases the SQLite rowid that keys
    the full-text index. Unlike an implicit rowid it is never renumbered by
    VACUUM.
    """

    __tablename__ = "messages"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Caller-supplied message ID; upserts resolve conflicts on it
    id: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    conversation_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )

    # user, assistant, system
    sender: Mapped[str] = mapped_column(String, nullable=False)

    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    thinking: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Display order; gaps are allowed
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index("idx_messages_conversation_id", "conversation_id"),
    )

    def __repr__(self) -> str:
        return f"<MessageRow(id={self.id}, conversation={self.conversation_id}, position={self.position})>"
