"""PDF chat pipeline: ingestion, context building and response post-processing."""

import logging
from typing import TYPE_CHECKING, Optional

from .base import BaseChunker, BaseDocumentStore
from .chunking import PageAwareChunker, join_pages
from .citations import CITATION_INSTRUCTIONS, extract_citations
from .document import Chunk, CitationExtraction, Page, RelevanceResult
from .embeddings import EmbeddingGenerator, create_generator
from .retriever import VectorRetriever
from .store import ChromaDocumentStore, MemoryDocumentStore

if TYPE_CHECKING:
    from readly.utils.config import ReadlyConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are Readly, an intelligent PDF reading assistant. You help users understand and analyze PDF documents through conversation.

Guidelines:
- Use **markdown formatting** in your responses
- Write math with LaTeX: $...$ for inline formulas and $$...$$ for formulas on their own line
- Use fenced code blocks for code examples
- If you're unsure about something, be honest about limitations
- Focus on the specific PDF context when available"""


class PdfChatPipeline:
    """Retrieval pipeline behind PDF chat.

    Ingestion chunks a document's extracted text, embeds the chunks and
    replaces the document's stored chunks. At question time it retrieves
    relevant chunks, formats them into the system prompt, and once the
    model's answer has finished streaming, extracts its citations.

    Example:
        ```python
        generator = EmbeddingGenerator(OpenAIEmbedding())
        pipeline = PdfChatPipeline(generator, MemoryDocumentStore())

        await pipeline.ingest_pages("pdf-1", pages)
        results = await pipeline.retrieve("pdf-1", "What did the study find?")
        prompt = pipeline.build_system_prompt("Annual report", results)
        # ... stream the answer from the LLM ...
        extraction = pipeline.finalize_response(answer)
        ```
    """

    def __init__(
        self,
        generator: EmbeddingGenerator,
        store: BaseDocumentStore,
        chunker: Optional[BaseChunker] = None,
        retriever: Optional[VectorRetriever] = None,
    ):
        """Initialize the pipeline.

        Args:
            generator: Embedding generator for chunks and queries
            store: Document store for texts and chunks
            chunker: Text chunker (default: PageAwareChunker)
            retriever: Retriever (default: VectorRetriever over the store)
        """
        self.generator = generator
        self.store = store
        self.chunker = chunker or PageAwareChunker()
        self.retriever = retriever or VectorRetriever(generator, store)

    async def ingest_pages(self, document_id: str, pages: list[Page]) -> list[Chunk]:
        """Index a document from its extracted pages."""
        full_text, first_page = join_pages(pages)
        return await self.ingest_text(document_id, full_text, first_page)

    async def ingest_text(
        self,
        document_id: str,
        full_text: str,
        first_page: int = 1,
    ) -> list[Chunk]:
        """Index a document from its full text.

        Any previously stored chunks of the document are replaced. Embedding
        failures propagate and leave the stored chunks untouched.

        Returns:
            The chunks created
        """
        chunks = self.chunker.chunk(document_id, full_text, first_page)
        embedded = await self.generator.embed_batch(chunks)

        await self.store.save_text(document_id, full_text)
        await self.store.replace_chunks(document_id, embedded)

        logger.info(f"Indexed document {document_id!r}: {len(chunks)} chunks")
        return chunks

    async def retrieve(
        self,
        document_id: str,
        query: str,
        k: Optional[int] = None,
    ) -> list[RelevanceResult]:
        """Retrieve relevant chunks of a document for a question."""
        return await self.retriever.retrieve(document_id, query, k)

    def build_context(self, title: str, results: list[RelevanceResult]) -> str:
        """Format retrieved chunks as page-labelled prompt context."""
        if not results:
            return ""

        sections = "\n\n---\n\n".join(
            f"[Page {result.chunk.page_number}, Section {i + 1}]\n{result.chunk.content.strip()}"
            for i, result in enumerate(results)
        )
        return f'Relevant content from "{title}":\n\n{sections}'

    def build_system_prompt(self, title: str, results: list[RelevanceResult]) -> str:
        """Build the system prompt for a chat turn."""
        context = self.build_context(title, results)
        if not context:
            return (
                f"{SYSTEM_PROMPT}\n\nWhen users select text from the PDF, help them "
                "understand or elaborate on that specific content."
            )

        return (
            f"{SYSTEM_PROMPT}\n\n{CITATION_INSTRUCTIONS}\n\n"
            "You have access to relevant sections from the PDF document. Use this "
            "content to provide accurate, contextual responses.\n\n"
            f"{context}"
        )

    def finalize_response(self, response_text: str) -> CitationExtraction:
        """Extract citations from a complete response."""
        return extract_citations(response_text)

    async def delete_document(self, document_id: str) -> bool:
        """Remove a document's text and chunks."""
        return await self.store.delete_document(document_id)

    async def count_chunks(self, document_id: Optional[str] = None) -> int:
        """Return the number of stored chunks."""
        return await self.store.count_chunks(document_id)


def create_store(config: "ReadlyConfig") -> BaseDocumentStore:
    """Build the configured document store."""
    settings = config.store
    if settings.backend == "chroma":
        return ChromaDocumentStore(
            collection_name=settings.collection,
            persist_directory=settings.persist_directory,
        )
    return MemoryDocumentStore()


def create_pipeline(config: "ReadlyConfig") -> PdfChatPipeline:
    """Wire a PdfChatPipeline from configuration."""
    generator = create_generator(config.embedding)
    store = create_store(config)
    retriever = VectorRetriever(
        generator,
        store,
        similarity_threshold=config.retrieval.similarity_threshold,
        deduplicate=config.retrieval.deduplicate,
        duplicate_threshold=config.retrieval.duplicate_threshold,
        default_k=config.retrieval.default_k,
    )
    return PdfChatPipeline(
        generator,
        store,
        chunker=PageAwareChunker(config.chunking),
        retriever=retriever,
    )
