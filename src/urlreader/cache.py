"""In-memory page cache with a fixed TTL.

Entries are keyed by the exact URL string (no normalisation) and hold both
the fetched HTML and its Markdown conversion. Expiry is enforced twice:
lazily on ``get``, and eagerly by a background sweep task that runs every
``cleanup_interval_seconds``. Together these bound an entry's lifetime to
``ttl + cleanup_interval`` even for keys that are written and never read.

The cache lives for the process only; nothing is persisted.
"""

from __future__ import annotations

import asyncio
import threading
import time
from contextlib import suppress
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from urlreader.models.cache import CacheEntry, CacheStats, CacheStatsEntry

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

log = structlog.get_logger()


class DocumentCache:
    """TTL cache of converted pages implementing CacheProtocol."""

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        cleanup_interval_seconds: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._cleanup_interval = cleanup_interval_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------

    def get(self, url: str) -> CacheEntry | None:
        """Return the entry for ``url`` if present and not expired.

        An expired entry found here is evicted before returning None.
        """
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self._ttl:
                del self._entries[url]
                log.debug("cache_entry_expired", url=url)
                return None
            return entry

    def set(self, url: str, raw_content: str, markdown_content: str) -> CacheEntry:
        """Insert or overwrite the entry for ``url``, stamped now."""
        entry = CacheEntry(
            url=url,
            raw_content=raw_content,
            markdown_content=markdown_content,
            stored_at=self._clock(),
            fetched_at=datetime.now(UTC),
        )
        with self._lock:
            self._entries[url] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def evict_expired(self) -> int:
        """Remove every entry older than the TTL. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [
                url for url, entry in self._entries.items() if now - entry.stored_at > self._ttl
            ]
            for url in expired:
                del self._entries[url]
        if expired:
            log.debug("cache_sweep_complete", evicted=len(expired))
        return len(expired)

    async def _run_sweep(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval)
            self.evict_expired()

    def start(self) -> None:
        """Start the background sweep on the running event loop."""
        if self._sweep_task is not None:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._run_sweep())

    async def destroy(self) -> None:
        """Stop the background sweep and drop every entry. Safe to call twice."""
        task, self._sweep_task = self._sweep_task, None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self.clear()

    async def __aenter__(self) -> DocumentCache:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.destroy()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        """Return the current size and per-entry age. Evicts nothing."""
        with self._lock:
            now = self._clock()
            entries = [
                CacheStatsEntry(url=url, age_seconds=now - entry.stored_at)
                for url, entry in self._entries.items()
            ]
        return CacheStats(size=len(entries), entries=entries)
