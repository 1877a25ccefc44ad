from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    URL_FORMAT_ERROR = "URL_FORMAT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    CONTENT_ERROR = "CONTENT_ERROR"
    CONVERSION_ERROR = "CONVERSION_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"
    INVALID_INPUT = "INVALID_INPUT"


class UrlReaderError(Exception):
    """Raised by the read pipeline for every classified failure.

    ``context`` carries what a caller needs to decide on a retry: always the
    URL, plus the timeout, proxy flag, or HTTP status where they apply. The
    pipeline itself never retries.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
                "context": self.context,
            }
        }


def snippet(text: str, limit: int = 200) -> str:
    """Return the first ``limit`` characters of ``text`` for diagnostics."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
