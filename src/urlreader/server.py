"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register tools
- Start the correct transport (stdio or HTTP)
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
import uvicorn
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, LoggingLevel, TextContent

import urlreader.tools.read_url as t_read_url
from urlreader import __version__
from urlreader.cache import DocumentCache
from urlreader.config import Settings
from urlreader.converter import HtmlConverter
from urlreader.fetcher import Fetcher, build_http_client
from urlreader.models.tools import ReadFailure, ReadResult, ReadWarning
from urlreader.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info(
        "server_starting",
        version=__version__,
        transport=settings.server.transport,
    )

    http_client = build_http_client(settings.fetcher)
    cache = DocumentCache(
        ttl_seconds=settings.cache.ttl_seconds,
        cleanup_interval_seconds=settings.cache.cleanup_interval_seconds,
    )
    cache.start()

    state = AppState(
        settings=settings,
        cache=cache,
        fetcher=Fetcher(http_client, settings.fetcher),
        converter=HtmlConverter(),
        http_client=http_client,
    )

    log.info(
        "server_started",
        version=__version__,
        transport=settings.server.transport,
        cache_ttl_seconds=settings.cache.ttl_seconds,
        proxy=settings.fetcher.proxy_url is not None,
    )

    try:
        yield state
    finally:
        await cache.destroy()
        await http_client.aclose()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP("urlreader", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg; set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(failure: ReadFailure) -> CallToolResult:
    """Convert a ReadFailure to the MCP tool error result envelope."""
    payload = {
        "error": failure.model_dump(
            mode="json", include={"code", "message", "suggestion", "recoverable", "context"}
        )
    }
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload))],
        isError=True,
    )


# MCP log levels (RFC 5424 names), lowest severity first
_CLIENT_LOG_LEVELS: list[LoggingLevel] = [
    "debug",
    "info",
    "notice",
    "warning",
    "error",
    "critical",
    "alert",
    "emergency",
]


def _describe_for_client(result: ReadResult) -> tuple[LoggingLevel, str]:
    """Pick the client log notification for a finished read."""
    if isinstance(result, ReadFailure):
        return "error", f"Failed to read {result.url}: [{result.code}] {result.message}"
    if isinstance(result, ReadWarning):
        return "warning", f"Empty content after conversion: {result.url}"
    if result.cached:
        return "info", f"Using cached content for {result.url} ({len(result.text)} chars)"
    return "info", f"Fetched and converted {result.url} ({len(result.text)} chars)"


async def _notify_client(
    ctx: Context, state: AppState, level: LoggingLevel, message: str
) -> None:
    """Send an MCP log notification if ``level`` passes the client's threshold.

    Delivery failures are logged to stderr and never fail the tool call.
    """
    if _CLIENT_LOG_LEVELS.index(level) < _CLIENT_LOG_LEVELS.index(state.client_log_level):
        return
    try:
        await ctx.log(level, message)
    except Exception:
        log.debug("client_notification_failed", level=level, exc_info=True)


@mcp._mcp_server.set_logging_level()  # pyright: ignore[reportPrivateUsage]
async def set_logging_level(level: LoggingLevel) -> None:
    """Handle logging/setLevel: raise or lower the client notification threshold."""
    server = mcp._mcp_server  # pyright: ignore[reportPrivateUsage]
    state: AppState = server.request_context.lifespan_context
    state.client_log_level = level
    log.info("client_log_level_set", level=level)


@mcp.tool()
async def read_url(
    url: str,
    ctx: Context,
    timeout_seconds: float | None = None,
    start_char: int | None = None,
    max_length: int | None = None,
    section: str | None = None,
    paragraph_range: str | None = None,
    read_headings: bool = False,
) -> object:
    """Fetch a web page and return its content as Markdown.

    Large pages can be narrowed: read_headings lists the headings only,
    section returns the part under a matching heading, paragraph_range
    selects paragraphs ("3", "1-5", "10-"), and start_char / max_length
    cut a character window from whatever remains.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        result = await t_read_url.handle(
            url,
            state,
            timeout_seconds=timeout_seconds,
            start_char=start_char,
            max_length=max_length,
            section=section,
            paragraph_range=paragraph_range,
            read_headings=read_headings,
        )
    except Exception:
        log.error("tool_unexpected_error", tool="read_url", exc_info=True)
        raise

    await _notify_client(ctx, state, *_describe_for_client(result))

    if isinstance(result, ReadFailure):
        log.warning(
            "tool_error",
            tool="read_url",
            code=result.code,
            message=result.message,
            recoverable=result.recoverable,
        )
        return _serialise_tool_error(result)
    return result.text


@mcp.tool()
async def cache_stats(ctx: Context) -> dict:
    """Report how many pages are cached and how old each entry is."""
    state: AppState = ctx.request_context.lifespan_context
    return state.cache.get_stats().model_dump(mode="json")


# ---------------------------------------------------------------------------
# HTTP transport
# ---------------------------------------------------------------------------


def run_http_server(settings: Settings) -> None:
    """Start the MCP server with Streamable HTTP transport."""
    _setup_logging(settings)
    log.info("http_transport_starting", host=settings.server.host, port=settings.server.port)

    uvicorn.run(
        mcp.streamable_http_app(),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()

    if settings.server.transport == "http":
        run_http_server(settings)
        return

    mcp.run()


if __name__ == "__main__":
    main()
