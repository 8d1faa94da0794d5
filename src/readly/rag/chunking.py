"""Page-aware text chunking."""

import bisect
import logging
import math
import re
from typing import Any, Optional

from readly.exceptions import ChunkingInputError

from .base import BaseChunker
from .document import Chunk, ChunkingOptions, Page

logger = logging.getLogger(__name__)

# Separates pages in a document's full text
PAGE_BREAK = "\f"

# A page break may end a chunk this much shorter than max_chunk_size
PAGE_BREAK_TOLERANCE = 0.2

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")
_SPACED_MATH = re.compile(r"\$\s+([^$]*?\S)\s+\$")
_SPACED_BACKSLASH = re.compile(r"\\\s+")


def clean_page_text(text: str) -> str:
    """Normalize the extracted text of a single page.

    Removes NUL and other control characters, collapses whitespace, and
    tightens spacing inside ``$...$`` math and after backslashes so LaTeX
    survives extraction.
    """
    text = _CONTROL_CHARS.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    text = _SPACED_MATH.sub(r"$\1$", text)
    text = _SPACED_BACKSLASH.sub(r"\\", text)
    return text.strip()


def join_pages(pages: list[Page]) -> tuple[str, int]:
    """Build a document's full text from its pages.

    Pages are ordered by number and missing pages are filled in empty, so the
    number of page breaks before an offset always identifies its page.

    Args:
        pages: Extracted pages, in any order

    Returns:
        Tuple of (full text, number of the first page)
    """
    if not pages:
        return "", 1

    ordered = sorted(pages, key=lambda p: p.page_number)
    first_page = ordered[0].page_number
    last_page = ordered[-1].page_number

    texts: dict[int, list[str]] = {}
    for page in ordered:
        cleaned = clean_page_text(page.content)
        if cleaned:
            texts.setdefault(page.page_number, []).append(cleaned)

    full_text = PAGE_BREAK.join(
        " ".join(texts.get(number, []))
        for number in range(first_page, last_page + 1)
    )
    return full_text, first_page


class PageAwareChunker(BaseChunker):
    """Split text into overlapping chunks tagged with page numbers.

    Every chunk is an exact slice of the source text and consecutive chunks
    share exactly ``overlap_size`` characters. Non-final chunks end, in order
    of preference, at a page break that keeps the chunk within
    ``PAGE_BREAK_TOLERANCE`` of ``max_chunk_size``, after the last whitespace
    in the window, or at a hard cut.
    """

    def __init__(self, options: Optional[ChunkingOptions] = None, **kwargs: Any):
        """Initialize the chunker.

        Args:
            options: Chunking options (defaults if omitted)
            **kwargs: Individual option overrides, e.g. ``max_chunk_size=1000``
        """
        if options is None:
            options = ChunkingOptions(**kwargs)
        elif kwargs:
            options = ChunkingOptions(**{**options.model_dump(), **kwargs})

        self.options = options

    def chunk(self, document_id: str, full_text: str, first_page: int = 1) -> list[Chunk]:
        """Split a document's full text into chunks."""
        try:
            self._validate(full_text)
        except ChunkingInputError as e:
            logger.warning(f"Not chunking document {document_id!r}: {e}")
            return []

        if not full_text.strip():
            return []

        page_starts = [0] + [
            m.end() for m in re.finditer(re.escape(PAGE_BREAK), full_text)
        ]

        chunks = []
        for chunk_index, (start, end) in enumerate(self._spans(full_text)):
            page_offset = bisect.bisect_right(page_starts, start) - 1
            chunks.append(Chunk(
                id=f"{document_id}_chunk_{chunk_index}",
                document_id=document_id,
                content=full_text[start:end],
                page_number=first_page + page_offset,
                start_index=start,
                end_index=end,
                chunk_index=chunk_index,
            ))

        logger.debug(f"Chunked document {document_id!r} into {len(chunks)} chunks")
        return chunks

    def _validate(self, full_text: Any) -> None:
        if not isinstance(full_text, str):
            raise ChunkingInputError(
                f"Expected text, got {type(full_text).__name__}"
            )

    def _spans(self, text: str) -> list[tuple[int, int]]:
        """Compute (start, end) offsets of every chunk."""
        if len(text) <= self.options.max_chunk_size:
            return [(0, len(text))]

        spans = []
        start = 0
        while True:
            end = self._find_end(text, start)
            spans.append((start, end))
            if end >= len(text):
                break
            start = end - self.options.overlap_size

        return spans

    def _find_end(self, text: str, start: int) -> int:
        """Pick the end offset of the chunk starting at ``start``."""
        size = self.options.max_chunk_size
        limit = start + size
        if limit >= len(text):
            return len(text)

        # The chunk must outgrow the overlap for the next one to advance
        min_end = start + self.options.overlap_size + 1

        if self.options.preserve_page_breaks:
            page_min_end = max(min_end, start + math.ceil(size * (1 - PAGE_BREAK_TOLERANCE)))
            pos = text.rfind(PAGE_BREAK, page_min_end - 1, limit)
            if pos != -1:
                return pos + 1

        for pos in range(limit - 1, min_end - 2, -1):
            if text[pos].isspace():
                return pos + 1

        return limit


def chunk_text(
    full_text: str,
    options: Optional[ChunkingOptions] = None,
    document_id: str = "",
    first_page: int = 1,
) -> list[Chunk]:
    """Split text into overlapping, page-aware chunks.

    Args:
        full_text: Extracted text, pages separated by ``PAGE_BREAK``
        options: Chunking options (defaults if omitted)
        document_id: ID of the owning document
        first_page: Page number of the first page in the text

    Returns:
        List of chunks ordered by chunk_index
    """
    return PageAwareChunker(options).chunk(document_id, full_text, first_page)
