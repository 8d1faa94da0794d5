"""Retrieval-augmented context selection for PDF chat.

This package provides:
- Page-aware chunking of extracted PDF text
- Batched, concurrent embedding generation (OpenAI, local, fake)
- Cosine-similarity relevance selection
- Citation marker extraction from generated answers
- Document stores (memory, ChromaDB) and the chat pipeline tying them together

Example:
    ```python
    from readly.rag import (
        EmbeddingGenerator,
        MemoryDocumentStore,
        OpenAIEmbedding,
        PdfChatPipeline,
    )

    pipeline = PdfChatPipeline(
        EmbeddingGenerator(OpenAIEmbedding(), batch_size=100, max_concurrent=3),
        MemoryDocumentStore(),
    )
    await pipeline.ingest_pages("pdf-1", pages)
    results = await pipeline.retrieve("pdf-1", "What are the key findings?")
    ```
"""

# Data structures
from .document import (
    Chunk,
    ChunkingOptions,
    Citation,
    CitationExtraction,
    EmbeddedChunk,
    Page,
    RelevanceResult,
)

# Base classes
from .base import (
    BaseChunker,
    BaseDocumentStore,
    BaseEmbedding,
)

# Chunking
from .chunking import (
    PAGE_BREAK,
    PageAwareChunker,
    chunk_text,
    clean_page_text,
    join_pages,
)

# Concurrency
from .concurrency import TaskGroup

# Embeddings
from .embeddings import (
    DummyEmbedding,
    EmbeddingGenerator,
    FakeEmbedding,
    LocalEmbedding,
    OpenAIEmbedding,
    create_embedding,
    create_generator,
)

# Relevance selection
from .selector import (
    cosine_similarity,
    drop_near_duplicates,
    select_top_k,
)

# Citations
from .citations import (
    CITATION_INSTRUCTIONS,
    extract_citations,
)

# Document stores
from .store import (
    ChromaDocumentStore,
    MemoryDocumentStore,
)

# Retrieval
from .retriever import (
    QueryType,
    VectorRetriever,
    detect_query_type,
    extract_page_numbers,
    preprocess_query,
    required_chunk_count,
)

# Pipeline
from .pipeline import (
    PdfChatPipeline,
    create_pipeline,
    create_store,
)

__all__ = [
    # Data structures
    "Chunk",
    "ChunkingOptions",
    "Citation",
    "CitationExtraction",
    "EmbeddedChunk",
    "Page",
    "RelevanceResult",
    # Base classes
    "BaseChunker",
    "BaseDocumentStore",
    "BaseEmbedding",
    # Chunking
    "PAGE_BREAK",
    "PageAwareChunker",
    "chunk_text",
    "clean_page_text",
    "join_pages",
    # Concurrency
    "TaskGroup",
    # Embeddings
    "DummyEmbedding",
    "EmbeddingGenerator",
    "FakeEmbedding",
    "LocalEmbedding",
    "OpenAIEmbedding",
    "create_embedding",
    "create_generator",
    # Relevance selection
    "cosine_similarity",
    "drop_near_duplicates",
    "select_top_k",
    # Citations
    "CITATION_INSTRUCTIONS",
    "extract_citations",
    # Document stores
    "ChromaDocumentStore",
    "MemoryDocumentStore",
    # Retrieval
    "QueryType",
    "VectorRetriever",
    "detect_query_type",
    "extract_page_numbers",
    "preprocess_query",
    "required_chunk_count",
    # Pipeline
    "PdfChatPipeline",
    "create_pipeline",
    "create_store",
]
