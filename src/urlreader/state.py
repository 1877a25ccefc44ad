"""Application state container.

AppState is created once at server startup (inside the FastMCP lifespan context
manager) and injected into every tool handler via the MCP Context object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from urlreader.config import Settings
    from urlreader.protocols import CacheProtocol, ConverterProtocol, FetcherProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings
    cache: CacheProtocol
    fetcher: FetcherProtocol
    converter: ConverterProtocol
    http_client: httpx.AsyncClient | None = None
    # Minimum level for MCP log notifications; set by the client via logging/setLevel
    client_log_level: str = "info"
