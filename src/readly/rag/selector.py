"""Relevance scoring and top-K selection."""

import math

from .document import EmbeddedChunk, RelevanceResult


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    if len(a) != len(b):
        raise ValueError(
            f"Vectors must have the same dimension ({len(a)} != {len(b)})"
        )

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (norm_a * norm_b)


def select_top_k(
    query_embedding: list[float],
    candidates: list[EmbeddedChunk],
    k: int,
) -> list[RelevanceResult]:
    """Select the ``k`` candidates most similar to the query.

    Results are ordered by descending score; equal scores keep the earlier
    chunk (lower chunk_index) first.

    Args:
        query_embedding: Embedding of the query
        candidates: Chunks with their embeddings
        k: Maximum number of results

    Returns:
        Up to ``k`` relevance results
    """
    if k <= 0 or not candidates:
        return []

    scored = [
        RelevanceResult(
            chunk=candidate.chunk,
            score=cosine_similarity(query_embedding, candidate.embedding),
        )
        for candidate in candidates
    ]
    scored.sort(key=lambda r: (-r.score, r.chunk.chunk_index))

    return scored[:k]


def _word_set(text: str) -> set[str]:
    return set(text.lower().split())


def drop_near_duplicates(
    results: list[RelevanceResult],
    threshold: float = 0.8,
) -> list[RelevanceResult]:
    """Remove results whose text nearly repeats a better-scoring result.

    Two chunks are near-duplicates when the Jaccard overlap of their word sets
    exceeds ``threshold``. Input order (best first) is preserved.
    """
    kept: list[RelevanceResult] = []
    kept_words: list[set[str]] = []

    for result in results:
        words = _word_set(result.chunk.content)
        duplicate = False
        for other in kept_words:
            if words and other:
                jaccard = len(words & other) / len(words | other)
                if jaccard > threshold:
                    duplicate = True
                    break
        if not duplicate:
            kept.append(result)
            kept_words.append(words)

    return kept
