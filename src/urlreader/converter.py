"""HTML to Markdown conversion.

``HtmlConverter.translate`` is a pure function of its input: no network
access and no shared mutable state. A fresh ``html2text.HTML2Text`` is built
per call because the parser keeps state between ``handle`` calls.
"""

from __future__ import annotations

import html2text


class HtmlConverter:
    """html2text-backed converter implementing ConverterProtocol."""

    def __init__(self, *, ignore_links: bool = False, ignore_images: bool = False) -> None:
        self._ignore_links = ignore_links
        self._ignore_images = ignore_images

    def _build_parser(self) -> html2text.HTML2Text:
        parser = html2text.HTML2Text()
        parser.body_width = 0  # No hard wrapping; paragraphs stay on one line
        parser.ignore_links = self._ignore_links
        parser.ignore_images = self._ignore_images
        parser.protect_links = True
        return parser

    def translate(self, html: str) -> str:
        """Convert ``html`` to Markdown. May raise on malformed input."""
        return self._build_parser().handle(html).strip()
