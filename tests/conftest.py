"""
Test configuration and fixtures.
"""

import pytest

from readly.rag import Chunk, EmbeddedChunk, Page


class FakeClock:
    """Manually advanced clock for cache tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_chunk():
    """Factory for chunks with sensible defaults."""

    def _make(
        chunk_index: int,
        content: str | None = None,
        document_id: str = "pdf-1",
        page_number: int = 1,
    ) -> Chunk:
        content = content if content is not None else f"chunk number {chunk_index}"
        return Chunk(
            id=f"{document_id}_chunk_{chunk_index}",
            document_id=document_id,
            content=content,
            page_number=page_number,
            start_index=chunk_index * 100,
            end_index=chunk_index * 100 + len(content),
            chunk_index=chunk_index,
        )

    return _make


@pytest.fixture
def make_embedded(make_chunk):
    """Factory for chunks paired with a given embedding."""

    def _make(chunk_index: int, embedding: list[float], **kwargs) -> EmbeddedChunk:
        return EmbeddedChunk(chunk=make_chunk(chunk_index, **kwargs), embedding=embedding)

    return _make


@pytest.fixture
def sample_pages():
    """Three pages of extracted text."""
    return [
        Page(
            page_number=1,
            content="Introduction. The quarterly report covers revenue,   costs and hiring. " * 4,
        ),
        Page(
            page_number=2,
            content="Methods. Data was collected from regional offices and audited. " * 4,
        ),
        Page(
            page_number=3,
            content="Results. Revenue grew twelve percent while costs stayed flat. " * 4,
        ),
    ]
