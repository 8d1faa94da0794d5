"""Data structures for PDF chunking, retrieval and citations."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Page(BaseModel):
    """Extracted text of a single PDF page.

    Attributes:
        page_number: 1-based page number
        content: Raw extracted text of the page
    """

    page_number: int = Field(ge=1)
    content: str = ""


class ChunkingOptions(BaseModel):
    """Options controlling how extracted text is split into chunks.

    Attributes:
        max_chunk_size: Maximum characters per chunk
        overlap_size: Characters shared by consecutive chunks
        preserve_page_breaks: Prefer ending chunks at page breaks
    """

    max_chunk_size: int = Field(default=4000, gt=0)
    overlap_size: int = Field(default=200, ge=0)
    preserve_page_breaks: bool = True

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkingOptions":
        if self.overlap_size >= self.max_chunk_size:
            raise ValueError("overlap_size must be less than max_chunk_size")
        return self


class Chunk(BaseModel):
    """A page-tagged slice of a document's extracted text.

    Chunks are immutable; they are regenerated whenever the source text changes.

    Attributes:
        id: Unique identifier for the chunk
        document_id: ID of the document the chunk was derived from
        content: Text of the chunk, equal to ``full_text[start_index:end_index]``
        page_number: Page the chunk's start offset falls within
        start_index: Start character offset in the full text
        end_index: End character offset (exclusive) in the full text
        chunk_index: Position of the chunk within the document
        metadata: Additional metadata
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    content: str
    page_number: int = 1
    start_index: int = 0
    end_index: int = 0
    chunk_index: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return (
            f"Chunk(id={self.id!r}, page={self.page_number}, "
            f"content={content_preview!r})"
        )


class EmbeddedChunk(BaseModel):
    """A chunk paired with its embedding vector."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    embedding: list[float]


class RelevanceResult(BaseModel):
    """A chunk scored against a query.

    Attributes:
        chunk: The matching chunk
        score: Cosine similarity to the query (higher is better)
    """

    chunk: Chunk
    score: float

    def __repr__(self) -> str:
        return f"RelevanceResult(chunk_id={self.chunk.id!r}, score={self.score:.4f})"


class Citation(BaseModel):
    """A page reference parsed out of a generated answer.

    Attributes:
        page_number: Cited page (1-based)
        preview_text: Snippet shown for the reference
        position_in_response: Character offset of the marker in the cleaned text
    """

    page_number: int
    preview_text: str
    position_in_response: int


class CitationExtraction(BaseModel):
    """Result of stripping citation markers from a response."""

    cleaned_text: str
    citations: list[Citation] = Field(default_factory=list)
