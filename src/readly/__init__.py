"""
Readly - retrieval-augmented context selection for chatting with PDFs.
"""

from readly.cache import TTLCache
from readly.exceptions import (
    ChunkingInputError,
    EmbeddingProviderError,
    MalformedCitationMarker,
    ReadlyError,
)
from readly.rag import (
    Chunk,
    ChunkingOptions,
    Citation,
    CitationExtraction,
    EmbeddedChunk,
    EmbeddingGenerator,
    MemoryDocumentStore,
    OpenAIEmbedding,
    Page,
    PdfChatPipeline,
    RelevanceResult,
    chunk_text,
    cosine_similarity,
    extract_citations,
    select_top_k,
)
from readly.utils.config import ReadlyConfig, load_config

__version__ = "0.1.0"
__all__ = [
    # Errors
    "ReadlyError",
    "ChunkingInputError",
    "EmbeddingProviderError",
    "MalformedCitationMarker",
    # Cache
    "TTLCache",
    # Core
    "Chunk",
    "ChunkingOptions",
    "Citation",
    "CitationExtraction",
    "EmbeddedChunk",
    "EmbeddingGenerator",
    "MemoryDocumentStore",
    "OpenAIEmbedding",
    "Page",
    "PdfChatPipeline",
    "RelevanceResult",
    "chunk_text",
    "cosine_similarity",
    "extract_citations",
    "select_top_k",
    # Config
    "ReadlyConfig",
    "load_config",
]
