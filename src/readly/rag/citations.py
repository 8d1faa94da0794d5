"""Citation marker extraction for generated answers.

The assistant is instructed to cite sources inline as
``[cite:<page>:<preview text>]``. After a response has finished streaming,
:func:`extract_citations` strips the markers and returns them as structured
records so the UI can render reference chips without re-scanning the text.
"""

import logging
import re
from typing import Optional

from readly.exceptions import MalformedCitationMarker

from .document import Citation, CitationExtraction

logger = logging.getLogger(__name__)

CITATION_INSTRUCTIONS = """When you use information from the document, cite it inline with a marker of the form [cite:PAGE:PREVIEW], where PAGE is the single page number the information comes from and PREVIEW is a short quote or description (no square brackets) from that page. Example: "Revenue grew 12% [cite:4:Quarterly revenue summary]." Cite one page per marker and never place markers inside math or code blocks."""

# Regions that are never scanned for markers: fenced code (an unterminated
# fence runs to the end), display math, inline code and inline math.
_PROTECTED = re.compile(
    r"(?s:```.*?(?:```|\Z))"
    r"|(?s:\$\$.*?\$\$)"
    r"|`[^`\n]*`"
    r"|\$(?=\S)[^$\n]*?\S\$(?!\d)"
)

_MARKER = re.compile(r"\[cite:([^\]\n]*)\]")
_PAGE = re.compile(r"\s*(\d+)\s*")


def _parse_marker(marker: str, body: str) -> tuple[int, str]:
    """Split a marker body into (page_number, preview_text)."""
    page_text, sep, preview = body.partition(":")
    if not sep:
        raise MalformedCitationMarker(marker, "missing preview text")

    match = _PAGE.fullmatch(page_text)
    if match is None:
        raise MalformedCitationMarker(marker, f"page {page_text!r} is not a single page number")

    page_number = int(match.group(1))
    if page_number < 1:
        raise MalformedCitationMarker(marker, "page numbers start at 1")
    if not preview:
        raise MalformedCitationMarker(marker, "missing preview text")

    return page_number, preview


def _scannable_spans(text: str) -> list[tuple[int, int]]:
    """Return the (start, end) spans of text outside protected regions."""
    spans = []
    position = 0
    for match in _PROTECTED.finditer(text):
        if match.start() > position:
            spans.append((position, match.start()))
        position = match.end()
    if position < len(text):
        spans.append((position, len(text)))
    return spans


def _find_marker(text: str, search_from: int) -> Optional[re.Match]:
    """Find the first marker at or after ``search_from`` outside protected regions."""
    for span_start, span_end in _scannable_spans(text):
        if span_end <= search_from:
            continue
        match = _MARKER.search(text, max(span_start, search_from), span_end)
        if match is not None:
            return match
    return None


def extract_citations(response_text: str) -> CitationExtraction:
    """Strip citation markers from a response and collect them.

    Markers with an unusable page number (non-numeric, zero, or a range such
    as ``5-7``) are removed without producing a citation. Each citation's
    ``position_in_response`` is the offset in the cleaned text just after the
    prose it follows, so whitespace between a claim and its marker is skipped.

    Removing a marker can join the text around it into a new marker, as in
    ``[ci[cite:1:a]te:2:b]``; such markers are removed and recorded too, so
    the cleaned text never contains a marker.

    Args:
        response_text: Full text of a generated response

    Returns:
        The cleaned text and the citations in order of removal
    """
    text = response_text
    found: list[list] = []
    search_from = 0

    while True:
        match = _find_marker(text, search_from)
        if match is None:
            break

        start, end = match.span()
        text = text[:start] + text[end:]
        anchor = len(text[:start].rstrip())

        # Keep earlier anchors pointing into the remaining text
        for entry in found:
            if entry[2] >= end:
                entry[2] -= end - start
            elif entry[2] > start:
                entry[2] = anchor

        # A rejoined marker starts after the last "]" or newline before the cut
        search_from = max(text.rfind("]", 0, start), text.rfind("\n", 0, start)) + 1

        try:
            page_number, preview = _parse_marker(match.group(0), match.group(1))
        except MalformedCitationMarker as e:
            logger.debug(f"Dropping citation: {e}")
            continue

        found.append([page_number, preview, anchor])

    citations = [
        Citation(page_number=page, preview_text=preview, position_in_response=anchor)
        for page, preview, anchor in found
    ]
    if citations:
        logger.debug(f"Extracted {len(citations)} citations")

    return CitationExtraction(cleaned_text=text, citations=citations)
