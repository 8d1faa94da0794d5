"""Document store implementations."""

import asyncio
import logging
from typing import Any, Optional

from .base import BaseDocumentStore
from .document import Chunk, EmbeddedChunk

logger = logging.getLogger(__name__)


class MemoryDocumentStore(BaseDocumentStore):
    """In-memory document store for testing and small deployments.

    Not suitable for large-scale production use.
    """

    def __init__(self) -> None:
        self._texts: dict[str, str] = {}
        self._chunks: dict[str, list[EmbeddedChunk]] = {}

    async def save_text(self, document_id: str, full_text: str) -> None:
        self._texts[document_id] = full_text

    async def get_text(self, document_id: str) -> Optional[str]:
        return self._texts.get(document_id)

    async def replace_chunks(
        self,
        document_id: str,
        embedded_chunks: list[EmbeddedChunk],
    ) -> list[str]:
        """Replace a document's chunks with a freshly generated set."""
        for item in embedded_chunks:
            if item.chunk.document_id != document_id:
                raise ValueError(
                    f"Chunk {item.chunk.id!r} belongs to {item.chunk.document_id!r}, "
                    f"not {document_id!r}"
                )

        self._chunks[document_id] = sorted(
            embedded_chunks, key=lambda item: item.chunk.chunk_index
        )

        logger.debug(f"Stored {len(embedded_chunks)} chunks for document {document_id!r}")
        return [item.chunk.id for item in self._chunks[document_id]]

    async def get_chunks(
        self,
        document_id: str,
        limit: Optional[int] = None,
    ) -> list[Chunk]:
        chunks = [item.chunk for item in self._chunks.get(document_id, [])]
        return chunks if limit is None else chunks[:limit]

    async def get_embedded_chunks(self, document_id: str) -> list[EmbeddedChunk]:
        return list(self._chunks.get(document_id, []))

    async def delete_document(self, document_id: str) -> bool:
        had_text = self._texts.pop(document_id, None) is not None
        had_chunks = self._chunks.pop(document_id, None) is not None
        return had_text or had_chunks

    async def count_chunks(self, document_id: Optional[str] = None) -> int:
        if document_id is not None:
            return len(self._chunks.get(document_id, []))
        return sum(len(chunks) for chunks in self._chunks.values())


class ChromaDocumentStore(BaseDocumentStore):
    """ChromaDB-backed document store.

    Chunk records and embeddings persist in a ChromaDB collection using the
    cosine space; full texts are held in memory.
    Requires the 'vector' extra to be installed.
    """

    def __init__(
        self,
        collection_name: str = "pdf_chunks",
        persist_directory: Optional[str] = None,
        client: Any = None,
    ):
        """Initialize the ChromaDB document store.

        Args:
            collection_name: Name of the ChromaDB collection
            persist_directory: Directory for persistent storage (None for in-memory)
            client: Pre-built ChromaDB client
        """
        self.collection_name = collection_name
        self.persist_directory = persist_directory
        self._client = client
        self._collection = None
        self._texts: dict[str, str] = {}

    def _get_client(self):
        """Get or create the ChromaDB client."""
        if self._client is None:
            try:
                import chromadb
            except ImportError:
                raise ImportError(
                    "ChromaDB document store requires 'chromadb'. "
                    "Install it with: pip install 'readly[vector]'"
                )

            if self.persist_directory:
                self._client = chromadb.PersistentClient(path=self.persist_directory)
            else:
                self._client = chromadb.EphemeralClient()
        return self._client

    def _get_collection(self):
        """Get or create the collection."""
        if self._collection is None:
            client = self._get_client()
            self._collection = client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        return self._collection

    async def _run(self, func):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @staticmethod
    def _to_chunk(chunk_id: str, content: str, metadata: dict[str, Any]) -> Chunk:
        metadata = dict(metadata or {})
        return Chunk(
            id=chunk_id,
            document_id=metadata.pop("document_id", ""),
            content=content or "",
            page_number=metadata.pop("page_number", 1),
            start_index=metadata.pop("start_index", 0),
            end_index=metadata.pop("end_index", 0),
            chunk_index=metadata.pop("chunk_index", 0),
            metadata=metadata,
        )

    async def save_text(self, document_id: str, full_text: str) -> None:
        self._texts[document_id] = full_text

    async def get_text(self, document_id: str) -> Optional[str]:
        return self._texts.get(document_id)

    async def replace_chunks(
        self,
        document_id: str,
        embedded_chunks: list[EmbeddedChunk],
    ) -> list[str]:
        """Write a document's new chunk records, then drop the stale ones.

        If writing fails the previous chunks stay in place.
        """
        collection = self._get_collection()

        ids = []
        documents = []
        embeddings = []
        metadatas = []

        for item in embedded_chunks:
            chunk = item.chunk
            if chunk.document_id != document_id:
                raise ValueError(
                    f"Chunk {chunk.id!r} belongs to {chunk.document_id!r}, not {document_id!r}"
                )
            ids.append(chunk.id)
            documents.append(chunk.content)
            embeddings.append(item.embedding)
            metadatas.append({
                **chunk.metadata,
                "document_id": chunk.document_id,
                "page_number": chunk.page_number,
                "start_index": chunk.start_index,
                "end_index": chunk.end_index,
                "chunk_index": chunk.chunk_index,
            })

        existing = await self._run(
            lambda: collection.get(where={"document_id": document_id}, include=[])
        )
        existing_ids = existing["ids"] if existing else []

        if ids:
            await self._run(
                lambda: collection.upsert(
                    ids=ids,
                    documents=documents,
                    embeddings=embeddings,
                    metadatas=metadatas,
                )
            )

        new_ids = set(ids)
        stale = [chunk_id for chunk_id in existing_ids if chunk_id not in new_ids]
        if stale:
            await self._run(lambda: collection.delete(ids=stale))

        logger.debug(
            f"Stored {len(ids)} chunks in ChromaDB collection '{self.collection_name}', "
            f"removed {len(stale)} stale"
        )
        return ids

    async def _get_records(self, document_id: str, include: list[str]) -> list[tuple]:
        collection = self._get_collection()
        results = await self._run(
            lambda: collection.get(where={"document_id": document_id}, include=include)
        )

        if not results or not results["ids"]:
            return []

        records = []
        for i, chunk_id in enumerate(results["ids"]):
            chunk = self._to_chunk(
                chunk_id,
                results["documents"][i] if results.get("documents") is not None else "",
                results["metadatas"][i] if results.get("metadatas") is not None else {},
            )
            embedding = None
            if "embeddings" in include and results.get("embeddings") is not None:
                embedding = [float(v) for v in results["embeddings"][i]]
            records.append((chunk, embedding))

        records.sort(key=lambda record: record[0].chunk_index)
        return records

    async def get_chunks(
        self,
        document_id: str,
        limit: Optional[int] = None,
    ) -> list[Chunk]:
        records = await self._get_records(document_id, ["documents", "metadatas"])
        chunks = [chunk for chunk, _ in records]
        return chunks if limit is None else chunks[:limit]

    async def get_embedded_chunks(self, document_id: str) -> list[EmbeddedChunk]:
        records = await self._get_records(
            document_id, ["documents", "metadatas", "embeddings"]
        )
        return [
            EmbeddedChunk(chunk=chunk, embedding=embedding)
            for chunk, embedding in records
            if embedding is not None
        ]

    async def delete_document(self, document_id: str) -> bool:
        had_chunks = await self.count_chunks(document_id) > 0
        if had_chunks:
            collection = self._get_collection()
            await self._run(lambda: collection.delete(where={"document_id": document_id}))
        had_text = self._texts.pop(document_id, None) is not None
        return had_text or had_chunks

    async def count_chunks(self, document_id: Optional[str] = None) -> int:
        collection = self._get_collection()
        if document_id is None:
            return await self._run(collection.count)

        results = await self._run(
            lambda: collection.get(where={"document_id": document_id}, include=[])
        )
        return len(results["ids"]) if results else 0
