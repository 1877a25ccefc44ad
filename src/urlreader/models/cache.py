from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CacheEntry(BaseModel):
    """A fetched page and its Markdown conversion."""

    model_config = ConfigDict(frozen=True)

    url: str
    raw_content: str  # Fetched HTML, kept for diagnostics only
    markdown_content: str
    stored_at: float  # Cache clock reading at insertion (seconds)
    fetched_at: datetime


class CacheStatsEntry(BaseModel):
    url: str
    age_seconds: float


class CacheStats(BaseModel):
    size: int
    entries: list[CacheStatsEntry]
