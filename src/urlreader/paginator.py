"""Narrowing operations over converted Markdown.

Every function here is pure: no I/O, no shared state, and none of them raise
for any input text. ``extract`` composes them in a fixed order:

  1. headings            (exclusive: other options are ignored)
  2. section             (heading-delimited region)
  3. paragraph range     (applied to the result of 2)
  4. character window    (always last)

Requests that cannot be satisfied (missing section, bad range) produce a
placeholder string instead of an error so the caller still gets a readable
answer.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from typing import Any

from urlreader.models.tools import PaginationOptions

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_PARAGRAPH_BREAK_RE = re.compile(r"\n(?:[ \t]*\n)+")
_RANGE_RE = re.compile(r"([0-9]+)(?:-([0-9]*))?")

NO_HEADINGS_MESSAGE = "No headings found in the content."
SECTION_NOT_FOUND_MESSAGE = 'Section "{section}" not found in the content.'
INVALID_RANGE_MESSAGE = 'Paragraph range "{range}" is invalid or out of bounds.'


# ---------------------------------------------------------------------------
# Heading classification
# ---------------------------------------------------------------------------


def classify_line(line: str) -> tuple[int, str] | None:
    """Return ``(level, text)`` if ``line`` is an ATX heading, else None.

    A heading is 1-6 ``#`` characters at the start of the line followed by
    whitespace. ``level`` is the length of the ``#`` run.
    """
    match = _HEADING_RE.match(line)
    if match is None:
        return None
    return len(match.group(1)), match.group(2).strip()


def iter_headings(text: str) -> Iterator[tuple[int, int, str]]:
    """Yield ``(line_index, level, text)`` for every heading in ``text``.

    Line indexes are 0-based positions in ``text.split("\\n")``. Every line is
    classified on its own, so a ``#`` line inside a code fence still counts.
    """
    for index, line in enumerate(text.split("\n")):
        heading = classify_line(line)
        if heading is not None:
            level, title = heading
            yield index, level, title


# ---------------------------------------------------------------------------
# Narrowing steps
# ---------------------------------------------------------------------------


def extract_headings(text: str) -> str:
    """Return the heading lines of ``text`` in document order."""
    lines = text.split("\n")
    headings = [lines[index] for index, _, _ in iter_headings(text)]
    if not headings:
        return NO_HEADINGS_MESSAGE
    return "\n".join(headings)


def extract_section(text: str, heading: str) -> str | None:
    """Return the section under the first heading whose text contains ``heading``.

    Matching is a case-insensitive substring test against the heading text,
    at any level. The section runs from the matched heading line up to, but
    not including, the next heading whose level is less than or equal to the
    matched one. Subheadings stay inside their parent section.

    Returns None when nothing matches or ``heading`` is blank.
    """
    needle = heading.strip().casefold()
    if not needle:
        return None

    lines = text.split("\n")
    headings = list(iter_headings(text))

    for position, (start, level, title) in enumerate(headings):
        if needle not in title.casefold():
            continue
        end = len(lines)
        for index, next_level, _ in headings[position + 1 :]:
            if next_level <= level:
                end = index
                break
        return "\n".join(lines[start:end])

    return None


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, dropping paragraphs that are empty after trimming."""
    return [p for p in _PARAGRAPH_BREAK_RE.split(text) if p.strip()]


def parse_paragraph_range(selection: str) -> tuple[int, int | None] | None:
    """Parse ``"N"``, ``"N-"`` or ``"N-M"`` (1-based, inclusive).

    Returns a 0-based ``(start, stop)`` slice where ``stop`` is exclusive and
    None means "to the end". Returns None for anything unparsable.
    """
    match = _RANGE_RE.fullmatch(selection)
    if match is None:
        return None

    first = int(match.group(1))
    if first < 1:
        return None

    last = match.group(2)
    if last is None:
        return first - 1, first
    if last == "":
        return first - 1, None
    return first - 1, int(last)


def extract_paragraph_range(text: str, selection: str) -> str | None:
    """Return the paragraphs selected by ``selection`` joined by blank lines.

    Returns None when the range is unparsable, starts past the last
    paragraph, or selects nothing.
    """
    bounds = parse_paragraph_range(selection)
    if bounds is None:
        return None

    start, stop = bounds
    paragraphs = split_paragraphs(text)
    if start >= len(paragraphs):
        return None

    selected = paragraphs[start:stop]
    if not selected:
        return None
    return "\n\n".join(selected)


def apply_character_window(
    text: str,
    start_char: int | None = None,
    max_length: int | None = None,
) -> str:
    """Return ``text[start_char : start_char + max_length]`` clamped to bounds."""
    start = 0 if start_char is None else start_char
    if start >= len(text):
        return ""

    start = max(0, start)
    end = len(text) if max_length is None else min(len(text), start + max_length)
    return text[start:end]


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def extract(text: str, options: PaginationOptions | Mapping[str, Any] | None = None) -> str:
    """Apply every requested narrowing step to ``text``.

    With no options set the input is returned unchanged.
    """
    if not isinstance(options, PaginationOptions):
        options = PaginationOptions.model_validate(options or {})

    if options.read_headings:
        return extract_headings(text)

    result = text

    if options.section is not None:
        section = extract_section(result, options.section)
        if section is None:
            return SECTION_NOT_FOUND_MESSAGE.format(section=options.section)
        result = section

    if options.paragraph_range is not None:
        paragraphs = extract_paragraph_range(result, options.paragraph_range)
        if paragraphs is None:
            return INVALID_RANGE_MESSAGE.format(range=options.paragraph_range)
        result = paragraphs

    if options.start_char is not None or options.max_length is not None:
        result = apply_character_window(result, options.start_char, options.max_length)

    return result
