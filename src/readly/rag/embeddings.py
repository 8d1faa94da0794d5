"""Embedding providers and batched embedding generation."""

import asyncio
import hashlib
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from openai import AsyncOpenAI, OpenAIError

from readly.cache import TTLCache
from readly.exceptions import EmbeddingProviderError

from .base import BaseEmbedding
from .concurrency import TaskGroup
from .document import Chunk, EmbeddedChunk

if TYPE_CHECKING:
    from readly.utils.config import EmbeddingSettings

logger = logging.getLogger(__name__)


class DummyEmbedding(BaseEmbedding):
    """A dummy embedding model for testing.

    Returns zero vectors of a specified dimension.
    """

    def __init__(self, dimension: int = 384):
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [[0.0] * self._dimension for _ in texts]

    async def embed_query(self, text: str) -> list[float]:
        return [0.0] * self._dimension


class FakeEmbedding(BaseEmbedding):
    """Fake embedding that derives deterministic vectors from text.

    Identical text always maps to the identical vector, so it is useful for
    tests that need predictable similarity without a provider.
    """

    def __init__(self, dimension: int = 384, seed: int = 42):
        """Initialize the fake embedding.

        Args:
            dimension: Dimension of the embedding vectors
            seed: Seed mixed into every hash
        """
        self._dimension = dimension
        self.seed = seed

    @property
    def dimension(self) -> int:
        return self._dimension

    def _hash_text(self, text: str) -> list[float]:
        """Expand a SHA-256 stream of the text into values in [-1, 1]."""
        values: list[float] = []
        counter = 0
        while len(values) < self._dimension:
            digest = hashlib.sha256(f"{self.seed}:{counter}:{text}".encode()).digest()
            values.extend(byte / 127.5 - 1.0 for byte in digest)
            counter += 1
        return values[: self._dimension]

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._hash_text(text) for text in texts]

    async def embed_query(self, text: str) -> list[float]:
        return self._hash_text(text)


class OpenAIEmbedding(BaseEmbedding):
    """Hosted embedding model served by the OpenAI embeddings API.

    Each call is a single API request; batching across requests is the job
    of :class:`EmbeddingGenerator`. Provider failures surface as
    :class:`EmbeddingProviderError`.
    """

    # Known model dimensions
    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize the OpenAI embedding model.

        Args:
            model: Model name (text-embedding-3-small, text-embedding-3-large)
            api_key: OpenAI API key (optional, uses OPENAI_API_KEY if not provided)
            base_url: Optional base URL for API
            client: Pre-built client, mainly for tests
        """
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self._client = client

    @property
    def dimension(self) -> int:
        return self.MODEL_DIMENSIONS.get(self.model, 1536)

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the OpenAI client."""
        if self._client is None:
            kwargs = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url

            self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts with one API request."""
        if not texts:
            return []

        client = self._get_client()
        try:
            response = await client.embeddings.create(
                model=self.model,
                input=texts,
            )
        except OpenAIError as e:
            raise EmbeddingProviderError(f"OpenAI embedding request failed: {e}") from e

        # The API tags each vector with the index of its input
        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise EmbeddingProviderError(
                f"Expected {len(texts)} embeddings, got {len(data)}"
            )

        return [item.embedding for item in data]

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query using OpenAI API."""
        client = self._get_client()
        try:
            response = await client.embeddings.create(
                model=self.model,
                input=text,
            )
        except OpenAIError as e:
            raise EmbeddingProviderError(f"OpenAI query embedding failed: {e}") from e

        if not response.data:
            raise EmbeddingProviderError("No embedding returned for query")

        return response.data[0].embedding


class LocalEmbedding(BaseEmbedding):
    """Local embedding model using sentence-transformers.

    Runs on the local machine instead of calling a hosted API.

    Note: Requires the 'local' extra to be installed.
    """

    # Known model dimensions
    MODEL_DIMENSIONS = {
        "all-MiniLM-L6-v2": 384,
        "all-mpnet-base-v2": 768,
        "multi-qa-mpnet-base-dot-v1": 768,
    }

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        device: Optional[str] = None,
        normalize: bool = True,
    ):
        """Initialize the local embedding model.

        Args:
            model_name: Name of the sentence-transformers model
            device: Device to run on (cuda, cpu, mps). Auto-detected if None.
            normalize: Whether to normalize embeddings
        """
        self.model_name = model_name
        self.device = device
        self.normalize = normalize
        self._model = None

    @property
    def dimension(self) -> int:
        return self.MODEL_DIMENSIONS.get(self.model_name, 384)

    def _get_model(self):
        """Get or load the sentence-transformers model."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError:
                raise ImportError(
                    "Local embedding requires 'sentence-transformers'. "
                    "Install it with: pip install 'readly[local]'"
                )
            self._model = SentenceTransformer(self.model_name, device=self.device)
            logger.info(f"Loaded embedding model: {self.model_name}")
        return self._model

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts using the local model."""
        if not texts:
            return []

        model = self._get_model()

        # Run in thread pool to avoid blocking
        loop = asyncio.get_running_loop()
        embeddings = await loop.run_in_executor(
            None,
            lambda: model.encode(
                texts,
                normalize_embeddings=self.normalize,
                convert_to_numpy=True,
            ),
        )

        return embeddings.tolist()

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query using the local model."""
        embeddings = await self.embed_documents([text])
        return embeddings[0]


class EmbeddingGenerator:
    """Embed chunks in bounded, concurrent batches.

    Chunks are split into batches of at most ``batch_size``. Up to
    ``max_concurrent`` batches run together as one group; a group is joined
    before the next starts, with ``group_delay`` seconds in between to stay
    under the provider's rate limit. Output order always matches input order.

    Any failing batch aborts the whole call with
    :class:`EmbeddingProviderError`; no partial results are returned.
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        batch_size: int = 100,
        max_concurrent: int = 3,
        group_delay: float = 0.1,
        query_cache: Optional[TTLCache] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the generator.

        Args:
            embedding: Embedding provider
            batch_size: Maximum inputs per provider request
            max_concurrent: Maximum requests in flight at once
            group_delay: Seconds to wait between batch groups
            query_cache: Optional cache of query embeddings keyed by text
            sleep: Coroutine used for the delay between groups
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be positive")
        if group_delay < 0:
            raise ValueError("group_delay must not be negative")

        self.embedding = embedding
        self.batch_size = batch_size
        self.max_concurrent = max_concurrent
        self.group_delay = group_delay
        self.query_cache = query_cache
        self._sleep = sleep

    async def embed_batch(self, chunks: list[Chunk]) -> list[EmbeddedChunk]:
        """Embed chunks, preserving their order.

        Args:
            chunks: Chunks to embed

        Returns:
            One EmbeddedChunk per input chunk, in input order
        """
        if not chunks:
            return []

        started = time.monotonic()
        batches = [
            chunks[i : i + self.batch_size]
            for i in range(0, len(chunks), self.batch_size)
        ]
        total_groups = (len(batches) + self.max_concurrent - 1) // self.max_concurrent

        logger.info(
            f"Embedding {len(chunks)} chunks in {len(batches)} batches "
            f"(batch_size={self.batch_size}, max_concurrent={self.max_concurrent})"
        )

        results: list[EmbeddedChunk] = []
        for group_number, first_batch in enumerate(range(0, len(batches), self.max_concurrent), 1):
            group = batches[first_batch : first_batch + self.max_concurrent]
            logger.debug(f"Starting batch group {group_number}/{total_groups} ({len(group)} batches)")

            task_group = TaskGroup(name=f"embedding-group-{group_number}")
            for offset, batch in enumerate(group):
                task_group.spawn(self._embed_one(batch, first_batch + offset))

            for batch_results in await task_group.join():
                results.extend(batch_results)

            if group_number < total_groups and self.group_delay > 0:
                await self._sleep(self.group_delay)

        duration = time.monotonic() - started
        logger.info(f"Generated {len(results)} embeddings in {duration:.1f}s")
        return results

    async def _embed_one(self, batch: list[Chunk], batch_index: int) -> list[EmbeddedChunk]:
        """Embed a single batch with one provider request."""
        logger.debug(f"Embedding batch {batch_index + 1} ({len(batch)} chunks)")
        try:
            vectors = await self.embedding.embed_documents([chunk.content for chunk in batch])
        except EmbeddingProviderError as e:
            if e.batch_index is not None:
                raise
            raise EmbeddingProviderError(e.message, batch_index=batch_index) from e
        except Exception as e:
            raise EmbeddingProviderError(
                f"{type(e).__name__}: {e}", batch_index=batch_index
            ) from e

        if len(vectors) != len(batch):
            raise EmbeddingProviderError(
                f"Expected {len(batch)} embeddings, got {len(vectors)}",
                batch_index=batch_index,
            )

        return [
            EmbeddedChunk(chunk=chunk, embedding=vector)
            for chunk, vector in zip(batch, vectors)
        ]

    async def embed_query(self, text: str) -> list[float]:
        """Embed a query string, consulting the query cache first."""
        if self.query_cache is not None:
            cached = self.query_cache.get(text)
            if cached is not None:
                return list(cached)

        try:
            vector = await self.embedding.embed_query(text)
        except EmbeddingProviderError:
            raise
        except Exception as e:
            raise EmbeddingProviderError(f"{type(e).__name__}: {e}") from e

        if self.query_cache is not None:
            self.query_cache.set(text, list(vector))

        return vector


def create_embedding(settings: "EmbeddingSettings") -> BaseEmbedding:
    """Build an embedding provider from settings."""
    if settings.provider == "openai":
        return OpenAIEmbedding(
            model=settings.model,
            api_key=settings.api_key,
            base_url=settings.base_url,
        )
    elif settings.provider == "local":
        return LocalEmbedding(model_name=settings.model)
    elif settings.provider == "fake":
        return FakeEmbedding(dimension=settings.dimension)
    else:
        raise ValueError(f"Unknown embedding provider: {settings.provider}")


def create_generator(settings: "EmbeddingSettings") -> EmbeddingGenerator:
    """Build an EmbeddingGenerator, with its query cache, from settings."""
    query_cache = None
    if settings.query_cache_ttl > 0:
        query_cache = TTLCache(ttl=settings.query_cache_ttl, max_entries=1024)

    return EmbeddingGenerator(
        create_embedding(settings),
        batch_size=settings.batch_size,
        max_concurrent=settings.max_concurrent,
        group_delay=settings.group_delay,
        query_cache=query_cache,
    )
