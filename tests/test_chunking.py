"""Tests for page-aware chunking."""

import logging

import pytest

from readly.rag import (
    PAGE_BREAK,
    ChunkingOptions,
    Page,
    PageAwareChunker,
    chunk_text,
    clean_page_text,
    join_pages,
)


def _reconstruct(chunks, overlap: int) -> str:
    if not chunks:
        return ""
    return chunks[0].content + "".join(c.content[overlap:] for c in chunks[1:])


class TestChunkingOptions:
    """Tests for chunking option validation."""

    def test_defaults(self):
        options = ChunkingOptions()

        assert options.max_chunk_size == 4000
        assert options.overlap_size == 200
        assert options.preserve_page_breaks is True

    def test_overlap_must_be_smaller_than_chunk(self):
        with pytest.raises(ValueError):
            ChunkingOptions(max_chunk_size=100, overlap_size=100)

    def test_negative_overlap_rejected(self):
        with pytest.raises(ValueError):
            ChunkingOptions(max_chunk_size=100, overlap_size=-1)

    def test_chunker_overrides(self):
        chunker = PageAwareChunker(max_chunk_size=500, overlap_size=50)

        assert chunker.options.max_chunk_size == 500
        assert chunker.options.overlap_size == 50

        with pytest.raises(ValueError):
            PageAwareChunker(max_chunk_size=10, overlap_size=10)


class TestDegenerateInput:
    """Tests for empty, short and invalid text."""

    def test_empty_text(self):
        options = ChunkingOptions(max_chunk_size=1000, overlap_size=100)

        assert chunk_text("", options) == []

    def test_whitespace_only(self):
        assert chunk_text("   \n\t  ") == []

    def test_invalid_input_degrades(self, caplog):
        chunker = PageAwareChunker()

        with caplog.at_level(logging.WARNING, logger="readly.rag.chunking"):
            chunks = chunker.chunk("pdf-1", None)

        assert chunks == []
        assert "pdf-1" in caplog.text

    def test_short_text_single_chunk(self):
        chunks = chunk_text("Hello world", document_id="doc")

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.content == "Hello world"
        assert chunk.start_index == 0
        assert chunk.end_index == 11
        assert chunk.chunk_index == 0
        assert chunk.page_number == 1
        assert chunk.id == "doc_chunk_0"
        assert chunk.document_id == "doc"

    def test_text_exactly_max_size(self):
        options = ChunkingOptions(max_chunk_size=10, overlap_size=2)
        chunks = chunk_text("0123456789", options)

        assert len(chunks) == 1


class TestChunkBoundaries:
    """Tests for boundary selection and overlap."""

    def test_hard_cut_without_whitespace(self):
        options = ChunkingOptions(max_chunk_size=100, overlap_size=10)
        chunks = chunk_text("A" * 250, options)

        assert [(c.start_index, c.end_index) for c in chunks] == [
            (0, 100),
            (90, 190),
            (180, 250),
        ]

    def test_splits_after_whitespace(self):
        text = " ".join(f"word{i}" for i in range(200))
        options = ChunkingOptions(max_chunk_size=100, overlap_size=20, preserve_page_breaks=False)
        chunks = chunk_text(text, options)

        assert len(chunks) > 1
        for chunk in chunks[:-1]:
            assert chunk.content[-1] == " "

    def test_offsets_match_content(self):
        text = " ".join(f"word{i}" for i in range(500))
        options = ChunkingOptions(max_chunk_size=120, overlap_size=30)
        chunks = chunk_text(text, options)

        for chunk in chunks:
            assert chunk.content == text[chunk.start_index:chunk.end_index]
            assert len(chunk.content) <= 120

    def test_overlap_between_consecutive_chunks(self):
        text = " ".join(f"word{i}" for i in range(500))
        overlap = 25
        options = ChunkingOptions(max_chunk_size=120, overlap_size=overlap)
        chunks = chunk_text(text, options)

        for previous, current in zip(chunks, chunks[1:]):
            assert previous.content[-overlap:] == current.content[:overlap]

    def test_reconstructs_full_text(self):
        text = "Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 40
        for overlap in (0, 10, 50):
            options = ChunkingOptions(max_chunk_size=200, overlap_size=overlap)
            chunks = chunk_text(text, options)

            assert _reconstruct(chunks, overlap) == text

    def test_chunk_index_follows_start_index(self):
        text = "x y z " * 300
        chunks = chunk_text(text, ChunkingOptions(max_chunk_size=64, overlap_size=8))

        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        starts = [c.start_index for c in chunks]
        assert starts == sorted(starts)
        assert len(set(starts)) == len(starts)

    def test_deterministic(self):
        text = "The same input always gives the same chunks. " * 50
        options = ChunkingOptions(max_chunk_size=150, overlap_size=15)

        assert chunk_text(text, options, "d") == chunk_text(text, options, "d")


class TestPageBreaks:
    """Tests for page-break alignment and page numbering."""

    def test_prefers_page_break_near_limit(self):
        text = "a" * 85 + PAGE_BREAK + "b" * 9 + " " + "b" * 200
        options = ChunkingOptions(max_chunk_size=100, overlap_size=10, preserve_page_breaks=True)
        chunks = chunk_text(text, options)

        assert chunks[0].end_index == 86
        assert chunks[0].content.endswith(PAGE_BREAK)

    def test_whitespace_when_not_preserving_pages(self):
        text = "a" * 85 + PAGE_BREAK + "b" * 9 + " " + "b" * 200
        options = ChunkingOptions(max_chunk_size=100, overlap_size=10, preserve_page_breaks=False)
        chunks = chunk_text(text, options)

        assert chunks[0].end_index == 96

    def test_ignores_page_break_too_far_from_limit(self):
        text = "a" * 50 + PAGE_BREAK + "b" * 30 + " " + "b" * 200
        options = ChunkingOptions(max_chunk_size=100, overlap_size=10, preserve_page_breaks=True)
        chunks = chunk_text(text, options)

        assert chunks[0].end_index == 82
        assert chunks[0].page_number == 1
        assert chunks[1].start_index == 72
        assert chunks[1].page_number == 2

    def test_page_number_is_page_of_start_offset(self):
        pages = [f"page {n} " + "filler text " * 30 for n in range(1, 6)]
        text = PAGE_BREAK.join(pages)
        chunks = chunk_text(text, ChunkingOptions(max_chunk_size=150, overlap_size=20))

        for chunk in chunks:
            assert chunk.page_number == 1 + text[:chunk.start_index].count(PAGE_BREAK)
        assert chunks[-1].page_number == 5

    def test_first_page_offset(self):
        chunks = chunk_text("x" + PAGE_BREAK + "y", first_page=3)

        assert len(chunks) == 1
        assert chunks[0].page_number == 3


class TestPageText:
    """Tests for page cleanup and joining."""

    def test_clean_page_text(self):
        assert clean_page_text("  Hello\x00   world\n\n again ") == "Hello world again"

    def test_clean_preserves_math(self):
        assert clean_page_text("E = $ mc^2 $ and \\ alpha") == "E = $mc^2$ and \\alpha"

    def test_clean_leaves_currency_alone(self):
        assert clean_page_text("Price $5 and $10") == "Price $5 and $10"

    def test_clean_strips_page_break_characters(self):
        assert PAGE_BREAK not in clean_page_text("one\ftwo")

    def test_join_pages_orders_and_fills_gaps(self):
        pages = [
            Page(page_number=2, content="b"),
            Page(page_number=1, content=" a  \x00 "),
            Page(page_number=4, content="d"),
        ]

        full_text, first_page = join_pages(pages)

        assert full_text == "a\fb\f\fd"
        assert first_page == 1

    def test_join_pages_empty(self):
        assert join_pages([]) == ("", 1)

    def test_joined_pages_chunk_to_their_pages(self, sample_pages):
        full_text, first_page = join_pages(sample_pages)
        options = ChunkingOptions(max_chunk_size=200, overlap_size=20)
        chunks = chunk_text(full_text, options, "pdf-1", first_page)

        assert {c.page_number for c in chunks} == {1, 2, 3}
        assert chunks[0].content.startswith("Introduction.")
