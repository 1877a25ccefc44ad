from __future__ import annotations

from urlreader.models.cache import CacheEntry, CacheStats, CacheStatsEntry
from urlreader.models.tools import (
    PaginationOptions,
    ReadFailure,
    ReadResult,
    ReadSuccess,
    ReadUrlInput,
    ReadWarning,
)

__all__ = [
    # cache
    "CacheEntry",
    "CacheStats",
    "CacheStatsEntry",
    # tools
    "PaginationOptions",
    "ReadUrlInput",
    "ReadSuccess",
    "ReadWarning",
    "ReadFailure",
    "ReadResult",
]
