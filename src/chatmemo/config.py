"""chatmemo configuration settings using pydantic-settings."""

import functools
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Conversation store settings.

    All settings can be overridden via environment variables with CHATMEMO_ prefix.
    Example: CHATMEMO_DATA_DIR, CHATMEMO_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="CHATMEMO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    data_dir: Path = Path("~/.local/share/chatmemo")
    database_name: str = "history.db"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Search
    search_default_limit: int = 20
    snippet_length: int = 60
    highlight_open: str = "<mark>"
    highlight_close: str = "</mark>"

    # Replace a message's index entry when an upsert changes its content.
    # Off by default: edited messages stay searchable under their original
    # text until reindex_messages() runs.
    reindex_on_content_change: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @field_validator("snippet_length", "search_default_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Ensure lengths and limits are positive."""
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def data_path(self) -> Path:
        """Return expanded data directory path."""
        return self.data_dir.expanduser()

    @property
    def database_path(self) -> Path:
        """Return full path of the SQLite database file."""
        return self.data_path / self.database_name


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.
    """
    return Settings()
