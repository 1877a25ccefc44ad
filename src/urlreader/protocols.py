"""Protocol interfaces for swappable components.

Tool handlers and AppState reference these protocols, not the concrete
implementations, so tests can substitute lightweight fakes (a converter
that always raises, a fetcher that counts calls).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from urlreader.models.cache import CacheEntry, CacheStats


class CacheProtocol(Protocol):
    """Interface for the page cache."""

    def get(self, url: str) -> CacheEntry | None: ...

    def set(self, url: str, raw_content: str, markdown_content: str) -> CacheEntry: ...

    def clear(self) -> None: ...

    def get_stats(self) -> CacheStats: ...


class FetcherProtocol(Protocol):
    """Interface for the HTTP page fetcher."""

    @property
    def uses_proxy(self) -> bool: ...

    async def fetch(self, url: str, *, timeout: float) -> str: ...


class ConverterProtocol(Protocol):
    """Interface for HTML to Markdown conversion."""

    def translate(self, html: str) -> str: ...
