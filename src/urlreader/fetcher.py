"""HTTP page fetcher.

All network I/O goes through a single Fetcher instance shared across tool
calls. The Fetcher receives an httpx.AsyncClient via constructor injection;
the lifespan owns the client lifecycle.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import structlog

from urlreader.config import FetcherSettings
from urlreader.errors import ErrorCode, UrlReaderError, snippet

if TYPE_CHECKING:
    from typing import Any

log = structlog.get_logger()

UNREADABLE_BODY = "[Could not read response body]"


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    settings = settings or FetcherSettings()
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(30.0),
        headers={"User-Agent": settings.user_agent},
        proxy=settings.proxy_url,
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=max(1, settings.max_connections // 2),
        ),
    )


class Fetcher:
    """Fetch a page body with a deadline on the request."""

    def __init__(self, client: httpx.AsyncClient, settings: FetcherSettings | None = None) -> None:
        self._client = client
        self._settings = settings or FetcherSettings()

    @property
    def uses_proxy(self) -> bool:
        return self._settings.proxy_url is not None

    async def fetch(self, url: str, *, timeout: float) -> str:
        """Fetch ``url`` and return the decoded body.

        ``timeout`` bounds the request until response headers arrive. It is
        also set as the httpx timeout on the request, so the client default
        never cuts a longer deadline short and each body read waits at most
        that long.

        Raises UrlReaderError with TIMEOUT_ERROR, NETWORK_ERROR, SERVER_ERROR
        or CONTENT_ERROR.
        """
        context: dict[str, Any] = {
            "url": url,
            "timeout_seconds": timeout,
            "proxy": self.uses_proxy,
        }
        request = self._client.build_request("GET", url, timeout=timeout)

        try:
            async with asyncio.timeout(timeout):
                response = await self._client.send(request, stream=True)
        except (TimeoutError, httpx.TimeoutException) as exc:
            log.warning("fetch_timeout", url=url, timeout_seconds=timeout)
            raise UrlReaderError(
                code=ErrorCode.TIMEOUT_ERROR,
                message=f"Timed out after {timeout}s fetching {url}",
                suggestion="The site may be slow. Try again later or raise timeout_seconds.",
                recoverable=True,
                context=context,
            ) from exc
        except httpx.HTTPError as exc:
            log.warning("fetch_network_error", url=url, error=str(exc))
            raise UrlReaderError(
                code=ErrorCode.NETWORK_ERROR,
                message=f"Network error fetching {url}: {exc}",
                suggestion=(
                    "Check the host name and your connection"
                    + (" and the configured proxy." if self.uses_proxy else ".")
                ),
                recoverable=True,
                context=context,
            ) from exc

        try:
            if response.is_error:
                body = await self._read_error_body(response)
                raise UrlReaderError(
                    code=ErrorCode.SERVER_ERROR,
                    message=f"HTTP {response.status_code} {response.reason_phrase} fetching {url}",
                    suggestion=_server_error_suggestion(response.status_code),
                    recoverable=response.status_code >= 500 or response.status_code == 429,
                    context={
                        **context,
                        "status_code": response.status_code,
                        "status_text": response.reason_phrase,
                        "body": snippet(body),
                    },
                )

            try:
                await response.aread()
                text = response.text
            except (httpx.HTTPError, UnicodeError) as exc:
                raise UrlReaderError(
                    code=ErrorCode.CONTENT_ERROR,
                    message=f"Failed to read content from {url}: {exc}",
                    suggestion="The connection may have dropped mid-transfer. Try again.",
                    recoverable=True,
                    context=context,
                ) from exc
        finally:
            await response.aclose()

        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            content_length=len(text),
        )
        return text

    @staticmethod
    async def _read_error_body(response: httpx.Response) -> str:
        try:
            await response.aread()
            return response.text
        except (httpx.HTTPError, UnicodeError):
            return UNREADABLE_BODY


def _server_error_suggestion(status_code: int) -> str:
    if status_code == 404:
        return "The page does not exist at this URL."
    if status_code in (401, 403):
        return "The site refused access to this page."
    if status_code == 429:
        return "The site is rate limiting requests. Wait before retrying."
    if status_code >= 500:
        return "The site may be temporarily unavailable."
    return "The request was rejected by the site."
