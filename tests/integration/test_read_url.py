"""Integration tests for the read_url tool handler.

Tests the full path: input validation → cache lookup → fetch → convert →
cache store → narrowing → tagged result. Uses a real AppState with respx
standing in for the network.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest
import respx

from urlreader.errors import ErrorCode, UrlReaderError
from urlreader.models.tools import (
    PaginationOptions,
    ReadFailure,
    ReadSuccess,
    ReadWarning,
)
from urlreader.tools.read_url import handle, retrieve_and_paginate

if TYPE_CHECKING:
    from urlreader.state import AppState

_SAMPLE_HTML = """\
<html><body>
<h1>Streaming</h1>
<p>Intro text.</p>
<h2>Overview</h2>
<p>Streaming is supported.</p>
<h2>Chains</h2>
<p>Chain streaming details.</p>
</body></html>"""

_SAMPLE_URL = "https://docs.example.com/streaming"


class _CountingFetcher:
    uses_proxy = False

    def __init__(self, body: str) -> None:
        self.body = body
        self.calls = 0

    async def fetch(self, url: str, *, timeout: float) -> str:
        self.calls += 1
        return self.body


class _ExplodingFetcher:
    uses_proxy = False

    async def fetch(self, url: str, *, timeout: float) -> str:
        raise RuntimeError("boom")


class _FailingConverter:
    def translate(self, html: str) -> str:
        raise ValueError("unbalanced tag soup")


class TestCaching:
    @respx.mock
    async def test_cache_miss_fetches_and_returns(self, app_state: AppState) -> None:
        respx.get(_SAMPLE_URL).mock(return_value=httpx.Response(200, text=_SAMPLE_HTML))

        result = await handle(_SAMPLE_URL, app_state)

        assert isinstance(result, ReadSuccess)
        assert result.cached is False
        assert result.url == _SAMPLE_URL
        assert "# Streaming" in result.text
        assert "Chain streaming details." in result.text

    @respx.mock
    async def test_second_call_hits_cache(self, app_state: AppState) -> None:
        respx.get(_SAMPLE_URL).mock(return_value=httpx.Response(200, text=_SAMPLE_HTML))

        first = await handle(_SAMPLE_URL, app_state)
        second = await handle(_SAMPLE_URL, app_state)

        assert isinstance(second, ReadSuccess)
        assert second.cached is True
        assert second.text == first.text  # type: ignore[union-attr]
        assert respx.calls.call_count == 1

    async def test_network_invoked_once_within_ttl(self, app_state: AppState) -> None:
        fetcher = _CountingFetcher(_SAMPLE_HTML)
        app_state.fetcher = fetcher

        for _ in range(3):
            result = await handle(_SAMPLE_URL, app_state)
            assert isinstance(result, ReadSuccess)

        assert fetcher.calls == 1

    async def test_cache_stores_raw_and_converted(self, app_state: AppState) -> None:
        app_state.fetcher = _CountingFetcher(_SAMPLE_HTML)
        await handle(_SAMPLE_URL, app_state)

        entry = app_state.cache.get(_SAMPLE_URL)
        assert entry is not None
        assert entry.raw_content == _SAMPLE_HTML
        assert "# Streaming" in entry.markdown_content

    async def test_cache_hit_skips_url_validation(self, app_state: AppState) -> None:
        app_state.cache.set("not a url", "<p>x</p>", "cached text")

        result = await handle("not a url", app_state)

        assert isinstance(result, ReadSuccess)
        assert result.text == "cached text"
        assert result.cached is True

    async def test_narrowing_applies_to_cached_text(self, app_state: AppState) -> None:
        app_state.fetcher = _CountingFetcher(_SAMPLE_HTML)
        full = await handle(_SAMPLE_URL, app_state)
        windowed = await handle(_SAMPLE_URL, app_state, start_char=2, max_length=5)

        assert isinstance(full, ReadSuccess)
        assert isinstance(windowed, ReadSuccess)
        assert windowed.cached is True
        assert windowed.text == full.text[2:7]


class TestNarrowing:
    @pytest.fixture(autouse=True)
    def _stub_network(self, app_state: AppState) -> None:
        app_state.fetcher = _CountingFetcher(_SAMPLE_HTML)

    async def test_read_headings(self, app_state: AppState) -> None:
        result = await handle(_SAMPLE_URL, app_state, read_headings=True)
        assert isinstance(result, ReadSuccess)
        assert result.text == "# Streaming\n## Overview\n## Chains"

    async def test_section(self, app_state: AppState) -> None:
        result = await handle(_SAMPLE_URL, app_state, section="overview")
        assert isinstance(result, ReadSuccess)
        assert result.text.startswith("## Overview")
        assert "Streaming is supported." in result.text
        assert "## Chains" not in result.text

    async def test_missing_section_is_a_readable_placeholder(self, app_state: AppState) -> None:
        result = await handle(_SAMPLE_URL, app_state, section="Missing")
        assert isinstance(result, ReadSuccess)
        assert result.text == 'Section "Missing" not found in the content.'

    async def test_paragraph_range(self, app_state: AppState) -> None:
        result = await handle(_SAMPLE_URL, app_state, paragraph_range="2")
        assert isinstance(result, ReadSuccess)
        assert result.text == "Intro text."

    async def test_empty_paragraph_range(self, app_state: AppState) -> None:
        result = await handle(_SAMPLE_URL, app_state, paragraph_range="")
        assert isinstance(result, ReadSuccess)
        assert result.text == 'Paragraph range "" is invalid or out of bounds.'


class TestFailures:
    @respx.mock
    async def test_malformed_url(self, app_state: AppState) -> None:
        result = await handle("not a url", app_state)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.URL_FORMAT_ERROR
        assert result.context == {"url": "not a url"}
        assert respx.calls.call_count == 0

    @respx.mock
    async def test_unsupported_scheme(self, app_state: AppState) -> None:
        result = await handle("ftp://example.com/file.txt", app_state)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.URL_FORMAT_ERROR
        assert respx.calls.call_count == 0

    @respx.mock
    async def test_connection_error_is_network_error(self, app_state: AppState) -> None:
        url = "https://nonexistent.invalid/"
        respx.get(url).mock(side_effect=httpx.ConnectError("Name or service not known"))

        result = await handle(url, app_state)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.NETWORK_ERROR
        assert result.recoverable is True
        assert result.context["url"] == url
        assert app_state.cache.get(url) is None

    @respx.mock
    async def test_timeout_carries_timeout_value(self, app_state: AppState) -> None:
        respx.get(_SAMPLE_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

        result = await handle(_SAMPLE_URL, app_state, timeout_seconds=0.5)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.TIMEOUT_ERROR
        assert result.context["timeout_seconds"] == 0.5

    @respx.mock
    async def test_default_timeout_from_settings(self, app_state: AppState) -> None:
        respx.get(_SAMPLE_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        result = await handle(_SAMPLE_URL, app_state)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.TIMEOUT_ERROR
        assert result.context["timeout_seconds"] == app_state.settings.fetcher.timeout_seconds

    @respx.mock
    async def test_server_error_not_cached(self, app_state: AppState) -> None:
        respx.get(_SAMPLE_URL).mock(return_value=httpx.Response(500, text="oops"))

        result = await handle(_SAMPLE_URL, app_state)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.SERVER_ERROR
        assert result.context["status_code"] == 500
        assert result.context["body"] == "oops"
        assert app_state.cache.get(_SAMPLE_URL) is None

    @respx.mock
    async def test_whitespace_body_is_content_error(self, app_state: AppState) -> None:
        respx.get(_SAMPLE_URL).mock(return_value=httpx.Response(200, text="  \n\t "))

        result = await handle(_SAMPLE_URL, app_state)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.CONTENT_ERROR

    async def test_conversion_failure(self, app_state: AppState) -> None:
        app_state.fetcher = _CountingFetcher("<div><p>broken")
        app_state.converter = _FailingConverter()

        with pytest.raises(UrlReaderError) as exc_info:
            await retrieve_and_paginate(
                _SAMPLE_URL, PaginationOptions(), app_state, timeout_seconds=1.0
            )

        error = exc_info.value
        assert error.code == ErrorCode.CONVERSION_ERROR
        assert error.context["html_snippet"] == "<div><p>broken"
        assert isinstance(error.__cause__, ValueError)
        assert app_state.cache.get(_SAMPLE_URL) is None

    async def test_unclassified_error_is_wrapped(self, app_state: AppState) -> None:
        app_state.fetcher = _ExplodingFetcher()

        with pytest.raises(UrlReaderError) as exc_info:
            await retrieve_and_paginate(
                _SAMPLE_URL, PaginationOptions(), app_state, timeout_seconds=1.0
            )

        error = exc_info.value
        assert error.code == ErrorCode.UNEXPECTED_ERROR
        assert isinstance(error.__cause__, RuntimeError)
        assert error.context["url"] == _SAMPLE_URL

    async def test_invalid_input(self, app_state: AppState) -> None:
        result = await handle(_SAMPLE_URL, app_state, start_char=-1)

        assert isinstance(result, ReadFailure)
        assert result.code == ErrorCode.INVALID_INPUT
        assert result.recoverable is False


class TestDegradedSuccess:
    @respx.mock
    async def test_empty_conversion_warns_and_is_not_cached(self, app_state: AppState) -> None:
        script_only = "<html><body><script>render()</script></body></html>"
        respx.get(_SAMPLE_URL).mock(return_value=httpx.Response(200, text=script_only))

        first = await handle(_SAMPLE_URL, app_state)
        second = await handle(_SAMPLE_URL, app_state)

        assert isinstance(first, ReadWarning)
        assert _SAMPLE_URL in first.text
        assert f"{len(script_only)} characters of HTML" in first.text
        assert isinstance(second, ReadWarning)
        assert respx.calls.call_count == 2
        assert app_state.cache.get(_SAMPLE_URL) is None


class TestConcurrency:
    async def test_concurrent_reads_share_cache(self, app_state: AppState) -> None:
        app_state.fetcher = _CountingFetcher(_SAMPLE_HTML)

        results = await asyncio.gather(
            *(handle(_SAMPLE_URL, app_state, paragraph_range=str(n)) for n in (1, 2, 3))
        )

        assert all(isinstance(result, ReadSuccess) for result in results)
        assert app_state.cache.get_stats().size == 1
