"""Integration test fixtures.

Provides a fully wired AppState with a real DocumentCache, html2text
converter, and an httpx client that tests mock with respx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from urlreader.cache import DocumentCache
from urlreader.converter import HtmlConverter
from urlreader.fetcher import Fetcher
from urlreader.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from urlreader.config import Settings


@pytest.fixture()
async def app_state(settings: Settings) -> AsyncIterator[AppState]:
    """AppState wired the same way as the server lifespan."""
    async with DocumentCache(ttl_seconds=60.0, cleanup_interval_seconds=30.0) as cache:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            yield AppState(
                settings=settings,
                cache=cache,
                fetcher=Fetcher(client, settings.fetcher),
                converter=HtmlConverter(),
                http_client=client,
            )
