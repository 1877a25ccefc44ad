"""Tool handler for read_url.

Receives AppState and runs one read: cache lookup, or fetch / convert /
store on a miss, then narrows the Markdown with the paginator. Returns a
tagged result (success, warning or failure) instead of raising.
No MCP or FastMCP imports; server.py handles the MCP wiring.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import httpx
import structlog

from urlreader.errors import ErrorCode, UrlReaderError, snippet
from urlreader.models.tools import (
    ReadFailure,
    ReadSuccess,
    ReadUrlInput,
    ReadWarning,
)
from urlreader.paginator import extract

if TYPE_CHECKING:
    from urlreader.models.tools import PaginationOptions
    from urlreader.state import AppState


async def handle(
    url: str,
    state: AppState,
    *,
    timeout_seconds: float | None = None,
    start_char: int | None = None,
    max_length: int | None = None,
    section: str | None = None,
    paragraph_range: str | None = None,
    read_headings: bool = False,
) -> ReadSuccess | ReadWarning | ReadFailure:
    """Handle a read_url tool call."""
    log = structlog.get_logger().bind(tool="read_url", url=url)
    log.info("handler_called")

    try:
        validated = ReadUrlInput.model_validate(
            {
                "url": url,
                "timeout_seconds": timeout_seconds,
                "options": {
                    "start_char": start_char,
                    "max_length": max_length,
                    "section": section,
                    "paragraph_range": paragraph_range,
                    "read_headings": read_headings,
                },
            }
        )
    except ValueError as exc:
        return _failure(
            url,
            UrlReaderError(
                code=ErrorCode.INVALID_INPUT,
                message=str(exc),
                suggestion=(
                    "Provide a URL (max 2048 chars), timeout_seconds > 0, "
                    "and non-negative start_char / max_length."
                ),
                recoverable=False,
                context={"url": url},
            ),
        )

    timeout = validated.timeout_seconds or state.settings.fetcher.timeout_seconds

    try:
        return await retrieve_and_paginate(
            validated.url, validated.options, state, timeout_seconds=timeout
        )
    except UrlReaderError as exc:
        log.warning(
            "read_failed",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _failure(url, exc)


async def retrieve_and_paginate(
    url: str,
    options: PaginationOptions,
    state: AppState,
    *,
    timeout_seconds: float,
) -> ReadSuccess | ReadWarning:
    """Return the narrowed Markdown for ``url``, from cache when possible.

    Raises UrlReaderError for every failure; anything unclassified is
    wrapped as UNEXPECTED_ERROR with the original exception chained.
    An empty conversion is returned as ReadWarning and never cached.
    """
    log = structlog.get_logger().bind(tool="read_url", url=url)
    started = time.monotonic()

    try:
        cached_entry = state.cache.get(url)

        if cached_entry is not None:
            log.info("cache_hit")
            markdown = cached_entry.markdown_content
            cached = True
        else:
            log.info("cache_miss_fetching")
            _validate_url(url)

            html = await state.fetcher.fetch(url, timeout=timeout_seconds)
            if not html.strip():
                raise UrlReaderError(
                    code=ErrorCode.CONTENT_ERROR,
                    message=f"Website returned empty content: {url}",
                    suggestion="The page has no body. Check the URL or try again later.",
                    recoverable=False,
                    context={"url": url},
                )

            try:
                markdown = state.converter.translate(html)
            except Exception as exc:
                raise UrlReaderError(
                    code=ErrorCode.CONVERSION_ERROR,
                    message=f"Failed to convert HTML from {url}: {exc}",
                    suggestion="The page HTML may be malformed or not HTML at all.",
                    recoverable=False,
                    context={"url": url, "html_snippet": snippet(html)},
                ) from exc

            if not markdown.strip():
                log.warning("empty_conversion", html_length=len(html))
                return ReadWarning(url=url, text=_empty_content_warning(url, html))

            state.cache.set(url, html, markdown)
            cached = False

        text = extract(markdown, options)
    except UrlReaderError:
        raise
    except Exception as exc:
        log.error("read_unexpected_error", exc_info=True)
        raise UrlReaderError(
            code=ErrorCode.UNEXPECTED_ERROR,
            message=f"Unexpected error reading {url}: {exc}",
            suggestion="This is likely a bug. Retry once; report it if it persists.",
            recoverable=False,
            context={"url": url, "cause": repr(exc)},
        ) from exc

    log.info(
        "read_complete",
        cached=cached,
        chars=len(text),
        duration_ms=round((time.monotonic() - started) * 1000),
    )
    return ReadSuccess(url=url, text=text, cached=cached)


def _validate_url(url: str) -> None:
    """Reject anything that is not an absolute http(s) URL."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise _url_format_error(url) from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise _url_format_error(url)


def _url_format_error(url: str) -> UrlReaderError:
    return UrlReaderError(
        code=ErrorCode.URL_FORMAT_ERROR,
        message=f"Invalid URL format: {url}",
        suggestion="Provide an absolute http:// or https:// URL, e.g. https://example.com/page.",
        recoverable=False,
        context={"url": url},
    )


def _empty_content_warning(url: str, html: str) -> str:
    return (
        f"Content warning: {url} was fetched ({len(html)} characters of HTML) "
        "but converted to empty text. The page may build its content with "
        "JavaScript or require a login.\n\n"
        f"HTML preview: {snippet(html)}"
    )


def _failure(url: str, error: UrlReaderError) -> ReadFailure:
    return ReadFailure(
        url=url,
        code=error.code,
        message=error.message,
        suggestion=error.suggestion,
        recoverable=error.recoverable,
        context=error.context,
    )
