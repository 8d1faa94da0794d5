"""Base classes and abstract interfaces for the retrieval components."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .document import Chunk, EmbeddedChunk


class BaseEmbedding(ABC):
    """Abstract base class for embedding providers.

    Providers turn text into fixed-length vectors, one per input, in input order.
    """

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts in a single provider request.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors
        """
        pass

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query.

        Args:
            text: Query text to embed

        Returns:
            Embedding vector
        """
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        pass


class BaseChunker(ABC):
    """Abstract base class for text chunkers."""

    @abstractmethod
    def chunk(self, document_id: str, full_text: str, first_page: int = 1) -> list["Chunk"]:
        """Split a document's full text into chunks.

        Args:
            document_id: ID of the document the text belongs to
            full_text: Extracted text of the whole document
            first_page: Page number of the first page in the text

        Returns:
            List of chunks ordered by chunk_index
        """
        pass


class BaseDocumentStore(ABC):
    """Abstract base class for document stores.

    A document store keeps each document's full text and its chunk/embedding
    records, keyed by document ID.
    """

    @abstractmethod
    async def save_text(self, document_id: str, full_text: str) -> None:
        """Store the full extracted text of a document."""
        pass

    @abstractmethod
    async def get_text(self, document_id: str) -> Optional[str]:
        """Return the full text of a document, or None if unknown."""
        pass

    @abstractmethod
    async def replace_chunks(
        self,
        document_id: str,
        embedded_chunks: list["EmbeddedChunk"],
    ) -> list[str]:
        """Replace all chunk records of a document.

        Args:
            document_id: Document the chunks belong to
            embedded_chunks: Chunks with their embeddings

        Returns:
            List of stored chunk IDs
        """
        pass

    @abstractmethod
    async def get_chunks(
        self,
        document_id: str,
        limit: Optional[int] = None,
    ) -> list["Chunk"]:
        """Return a document's chunks ordered by chunk_index."""
        pass

    @abstractmethod
    async def get_embedded_chunks(self, document_id: str) -> list["EmbeddedChunk"]:
        """Return a document's chunks that have embeddings, ordered by chunk_index."""
        pass

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """Delete a document's text and chunks. Returns True if anything was removed."""
        pass

    @abstractmethod
    async def count_chunks(self, document_id: Optional[str] = None) -> int:
        """Count stored chunks, optionally for one document."""
        pass
