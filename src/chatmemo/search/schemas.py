"""Search request and response schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class DateRange(BaseModel):
    """Inclusive bounds on message created_at."""

    start: str = Field(..., description="Earliest timestamp (ISO-8601)")
    end: str = Field(..., description="Latest timestamp (ISO-8601)")

    @field_validator("start", "end", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.isoformat()
        return v

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("date range start must not be after end")
        return self


class SearchFilters(BaseModel):
    """Optional filters, combined with AND on top of the keyword match."""

    platform: Optional[set[str]] = Field(default=None, description="Allowed platforms: chatgpt, claude, ...")
    date_range: Optional[DateRange] = Field(default=None, description="Bounds on message created_at")
    sender: Optional[str] = Field(default=None, description="Exact sender, e.g. user")


class SearchOptions(BaseModel):
    """Pagination."""

    limit: int = Field(default=20, ge=1, le=500, description="Maximum results to return")
    offset: int = Field(default=0, ge=0, description="Results to skip")


class SearchQuery(BaseModel):
    """Full-text search request.

    An empty keyword is allowed and yields no results.
    """

    keyword: str = Field(..., max_length=1000, description="Text to search for")
    filters: SearchFilters = Field(default_factory=SearchFilters)
    options: SearchOptions = Field(default_factory=SearchOptions)

    model_config = {
        "json_schema_extra": {
            "example": {
                "keyword": "database migration",
                "filters": {"platform": ["chatgpt", "claude"], "sender": "user"},
                "options": {"limit": 20, "offset": 0},
            }
        }
    }


class SearchHit(BaseModel):
    """A matched message with its conversation context."""

    id: str = Field(..., description="Message ID")
    conversation_id: str
    content: str
    thinking: Optional[str] = None
    created_at: Optional[str] = None
    sender: str
    platform: str
    title: Optional[str] = None
    snippet: str = Field(..., description="Excerpt with highlighted keywords")


class SearchOutcome(BaseModel):
    """Result of a search.

    A failed search carries an error message and no results; an empty but
    successful search has error set to None.
    """

    results: list[SearchHit] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: str) -> "SearchOutcome":
        return cls(results=[], error=error)
