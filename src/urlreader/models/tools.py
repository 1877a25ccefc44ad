from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from urlreader.errors import ErrorCode

# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class PaginationOptions(BaseModel):
    """How to narrow a page's Markdown before returning it.

    Steps run in a fixed order: headings (exclusive), section, paragraph
    range, character window.
    """

    read_headings: bool = False
    section: str | None = None
    paragraph_range: str | None = None
    start_char: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)


class ReadUrlInput(BaseModel):
    url: str = Field(min_length=1, max_length=2048)
    timeout_seconds: float | None = Field(default=None, gt=0)
    options: PaginationOptions = PaginationOptions()


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class ReadSuccess(BaseModel):
    status: Literal["success"] = "success"
    url: str
    text: str
    cached: bool


class ReadWarning(BaseModel):
    """Degraded success: the page was fetched but nothing usable came out."""

    status: Literal["warning"] = "warning"
    url: str
    text: str


class ReadFailure(BaseModel):
    status: Literal["failure"] = "failure"
    url: str
    code: ErrorCode
    message: str
    suggestion: str
    recoverable: bool
    context: dict[str, Any] = Field(default_factory=dict)


ReadResult = Annotated[ReadSuccess | ReadWarning | ReadFailure, Field(discriminator="status")]
