"""Shared fixtures for chatmemo tests."""

from pathlib import Path
from typing import Callable

import pytest

from chatmemo.config import Settings
from chatmemo.logging import setup_logging
from chatmemo.models import Conversation, Message
from chatmemo.store import ConversationStore


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    """Keep structured log lines out of test output."""
    setup_logging("CRITICAL")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any .env file, pointing at a temp directory."""
    return Settings(_env_file=None, data_dir=tmp_path / "data")


@pytest.fixture
def store(settings: Settings):
    """An open store backed by a fresh database."""
    store = ConversationStore(settings=settings).open()
    yield store
    store.close()


@pytest.fixture
def make_conversation() -> Callable[..., Conversation]:
    """Factory for conversations with simple, ordered messages.

    messages is a list of (sender, content) tuples or Message objects.
    """

    def _make(
        conversation_id: str = "conv-1",
        platform: str = "chatgpt",
        messages: list | None = None,
        title: str | None = "Test conversation",
        url: str | None = None,
        created_at: str = "2025-01-01T10:00:00",
        updated_at: str = "2025-01-01T10:00:00",
    ) -> Conversation:
        built: list[Message] = []
        for position, item in enumerate(messages or []):
            if isinstance(item, Message):
                built.append(item)
                continue
            sender, content = item
            built.append(
                Message(
                    id=f"{conversation_id}-m{position}",
                    sender=sender,
                    content=content,
                    position=position,
                    created_at=f"2025-01-01T10:{position:02d}:00",
                    updated_at=f"2025-01-01T10:{position:02d}:00",
                )
            )
        return Conversation(
            id=conversation_id,
            platform=platform,
            title=title,
            url=url,
            created_at=created_at,
            updated_at=updated_at,
            messages=built,
        )

    return _make
