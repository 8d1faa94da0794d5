"""Query analysis and document-scoped vector retrieval."""

import logging
import math
import re
from collections import defaultdict
from enum import Enum
from typing import Optional

from .base import BaseDocumentStore
from .document import EmbeddedChunk, RelevanceResult
from .embeddings import EmbeddingGenerator
from .selector import cosine_similarity, drop_near_duplicates, select_top_k

logger = logging.getLogger(__name__)


class QueryType(str, Enum):
    """Kinds of questions users ask about a document."""
    COMPREHENSIVE = "comprehensive"
    TIMELINE = "timeline"
    SUMMARY = "summary"
    PAGE_SPECIFIC = "page_specific"
    KEYWORD = "keyword"
    GENERAL = "general"


COMPREHENSIVE_INDICATORS = (
    "entire", "complete", "full", "comprehensive", "detailed analysis",
    "everything about", "all about", "tell me about", "explain everything",
    "whole document",
)

TIMELINE_INDICATORS = (
    "timeline", "chronological", "year-wise", "history of", "evolution",
    "progression", "development over time", "through the years", "over time",
    "step by step", "chronology", "sequence of events",
)

SUMMARY_INDICATORS = (
    "summary", "summarize", "summarise", "overview", "main points",
    "key points", "gist",
)

_YEAR_RANGE = re.compile(r"\d{4}.*\d{4}|(?:from|since) \d{4}")
_WHAT_ABOUT = re.compile(r"what.*about")
_PAGE_REFERENCE = re.compile(r"pages?\s*\d+")
_PAGE_RANGE = re.compile(r"pages?\s*(\d+)\s*(?:to|-|–)\s*(\d+)", re.IGNORECASE)
_SINGLE_PAGE = re.compile(r"pages?\s*(\d+)", re.IGNORECASE)

_EXPLAIN_PAGE = re.compile(r"explain\s+page\s*\d+(?:\s*(?:to|-)?\s*\d+)?", re.IGNORECASE)
_WHAT_PAGE = re.compile(r"what.*page\s*\d+(?:\s*(?:to|-)?\s*\d+)?", re.IGNORECASE)
_PAGE_SAYS = re.compile(r"page\s*\d+(?:\s*(?:to|-)?\s*\d+)?\s*says?", re.IGNORECASE)
_FROM_PAGE = re.compile(r"from\s+page\s*\d+", re.IGNORECASE)

_MONTHS = (
    "january|february|march|april|may|june|july|august|"
    "september|october|november|december"
)
_DATE = re.compile(rf"\d{{4}}|\d{{1,2}}/\d{{1,2}}/\d{{4}}|\b(?:{_MONTHS})\b", re.IGNORECASE)

# Upper bounds of the page sections, as fractions of the last page
COMPREHENSIVE_SECTIONS = (0.2, 0.4, 0.6, 0.8)
SUMMARY_SECTIONS = (0.33, 0.66)

# Never expand a page range beyond this many pages
MAX_PAGE_RANGE = 50


def detect_query_type(query: str) -> QueryType:
    """Classify a question to decide how much context it needs."""
    lower = query.lower().strip()

    if any(indicator in lower for indicator in COMPREHENSIVE_INDICATORS):
        return QueryType.COMPREHENSIVE

    if any(indicator in lower for indicator in TIMELINE_INDICATORS) or _YEAR_RANGE.search(lower):
        return QueryType.TIMELINE

    if any(indicator in lower for indicator in SUMMARY_INDICATORS):
        return QueryType.SUMMARY
    if _WHAT_ABOUT.search(lower) and len(lower) < 50:
        return QueryType.SUMMARY

    if _PAGE_REFERENCE.search(lower) or "explain page" in lower:
        return QueryType.PAGE_SPECIFIC

    if len(lower) < 30 and len(lower.split()) <= 5:
        return QueryType.KEYWORD

    return QueryType.GENERAL


def extract_page_numbers(query: str) -> list[int]:
    """Extract page references such as "page 22 to 24" or "pages 5-8"."""
    match = _PAGE_RANGE.search(query)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        if end < start:
            start, end = end, start
        end = min(end, start + MAX_PAGE_RANGE - 1)
        return list(range(start, end + 1))

    match = _SINGLE_PAGE.search(query)
    if match:
        return [int(match.group(1))]

    return []


def required_chunk_count(query_type: QueryType, query: str) -> int:
    """Number of chunks a question of this type should be answered from."""
    length = len(query)
    word_count = len(query.split())
    lower = query.lower()

    if query_type == QueryType.COMPREHENSIVE:
        return min(40, max(30, word_count * 2))
    if query_type == QueryType.TIMELINE:
        return 35 if length > 100 else 25
    if query_type == QueryType.SUMMARY:
        if "detailed" in lower or "comprehensive" in lower or length > 80:
            return 20
        return 15
    if query_type == QueryType.PAGE_SPECIFIC:
        pages = extract_page_numbers(query)
        return min(15, max(8, len(pages) * 3))
    if query_type == QueryType.KEYWORD:
        return 8
    if length > 100 or word_count > 15:
        return 15
    return 10


def preprocess_query(query: str, query_type: QueryType) -> str:
    """Rewrite a question into the text that is embedded for search.

    Page references carry no meaning for an embedding and are replaced with
    content-focused phrasing; summary and keyword questions are broadened.
    Other questions are embedded as asked.
    """
    if query_type == QueryType.PAGE_SPECIFIC:
        processed = query.strip()
        processed = _EXPLAIN_PAGE.sub("explain the content about", processed)
        processed = _WHAT_PAGE.sub("what is discussed about", processed)
        processed = _PAGE_SAYS.sub("the content discusses", processed)
        processed = _FROM_PAGE.sub("information about", processed)
        return processed

    if query_type == QueryType.SUMMARY:
        processed = query.strip()
        if not any(word in processed for word in ("entire", "whole", "complete")):
            processed = f"comprehensive overview and {processed}"
        return processed

    if query_type == QueryType.KEYWORD:
        return f"information and details about {query.strip()}"

    return query


def _contains_date(text: str) -> bool:
    return _DATE.search(text) is not None


class VectorRetriever:
    """Retrieve the chunks of one document most relevant to a question.

    The question is classified first and each kind is searched its own way:

    - comprehensive and summary questions take the best chunks from each
      section of the document so the answer covers all of it;
    - timeline questions favour chunks mentioning dates and come back in
      page order;
    - page questions take the named pages first, then related context;
    - keyword questions mix similarity with literal keyword matches;
    - everything else is a plain similarity search.

    Falls back to the document's opening chunks (score 0.0) when the question
    is empty, when no chunk has an embedding, or when nothing is found.
    Embedding failures are not masked.
    """

    def __init__(
        self,
        generator: EmbeddingGenerator,
        store: BaseDocumentStore,
        similarity_threshold: float = 0.0,
        deduplicate: bool = False,
        duplicate_threshold: float = 0.8,
        default_k: Optional[int] = None,
    ):
        """Initialize the vector retriever.

        Args:
            generator: Embedding generator for queries
            store: Document store holding the chunks
            similarity_threshold: Minimum score for a similarity match to be kept
            deduplicate: Drop results that nearly repeat a better one
            duplicate_threshold: Word overlap above which results are duplicates
            default_k: Result count when none is given (inferred from the query if None)
        """
        self.generator = generator
        self.store = store
        self.similarity_threshold = similarity_threshold
        self.deduplicate = deduplicate
        self.duplicate_threshold = duplicate_threshold
        self.default_k = default_k

    async def retrieve(
        self,
        document_id: str,
        query: str,
        k: Optional[int] = None,
    ) -> list[RelevanceResult]:
        """Retrieve relevant chunks of a document for a question.

        Args:
            document_id: Document to search
            query: User question
            k: Number of results (inferred from the question if None)

        Returns:
            Relevance results, at most ``k``
        """
        query_type = detect_query_type(query)
        if k is None:
            k = self.default_k or required_chunk_count(query_type, query)

        if not query.strip():
            return await self._first_chunks(document_id, k)

        candidates = await self.store.get_embedded_chunks(document_id)
        if not candidates:
            logger.warning(f"No embedded chunks for document {document_id!r}, using first chunks")
            return await self._first_chunks(document_id, k)

        query_embedding = await self.generator.embed_query(preprocess_query(query, query_type))

        if query_type == QueryType.COMPREHENSIVE:
            results = self._sectioned_search(
                query_embedding, candidates, k, COMPREHENSIVE_SECTIONS, math.ceil(k / 5)
            )
        elif query_type == QueryType.SUMMARY:
            results = self._sectioned_search(
                query_embedding, candidates, k, SUMMARY_SECTIONS, 3
            )
        elif query_type == QueryType.TIMELINE:
            results = self._timeline_search(query_embedding, candidates, k)
        elif query_type == QueryType.PAGE_SPECIFIC:
            results = self._page_search(
                query_embedding, candidates, k, extract_page_numbers(query)
            )
        elif query_type == QueryType.KEYWORD:
            results = self._hybrid_search(query_embedding, candidates, k, query)
        else:
            results = self._semantic_search(query_embedding, candidates, k)

        if self.deduplicate:
            results = drop_near_duplicates(results, self.duplicate_threshold)

        if not results:
            logger.info(f"No chunks of {document_id!r} matched the query, using first chunks")
            return await self._first_chunks(document_id, k)

        logger.debug(
            f"Retrieved {min(k, len(results))} chunks for {query_type.value} query "
            f"on document {document_id!r}"
        )
        return results[:k]

    def _semantic_search(
        self,
        query_embedding: list[float],
        candidates: list[EmbeddedChunk],
        limit: int,
    ) -> list[RelevanceResult]:
        """Top matches by similarity that clear the threshold."""
        # Over-fetch so deduplication can still fill the limit
        fetch = len(candidates) if self.deduplicate else limit
        results = [
            r for r in select_top_k(query_embedding, candidates, fetch)
            if r.score >= self.similarity_threshold
        ]
        if self.deduplicate:
            results = drop_near_duplicates(results, self.duplicate_threshold)
        return results[:limit]

    def _sectioned_search(
        self,
        query_embedding: list[float],
        candidates: list[EmbeddedChunk],
        limit: int,
        boundaries: tuple[float, ...],
        per_section: int,
    ) -> list[RelevanceResult]:
        """Best ``per_section`` matches from each page section of the document.

        ``boundaries`` are fractions of the last page number that close each
        section but the last.
        """
        last_page = max(c.chunk.page_number for c in candidates)

        sections: dict[int, list[EmbeddedChunk]] = defaultdict(list)
        for candidate in candidates:
            page = candidate.chunk.page_number
            section = next(
                (i for i, bound in enumerate(boundaries) if page <= last_page * bound),
                len(boundaries),
            )
            sections[section].append(candidate)

        picked: list[RelevanceResult] = []
        for members in sections.values():
            picked.extend(self._semantic_search(query_embedding, members, per_section))

        picked.sort(key=lambda r: (-r.score, r.chunk.chunk_index))
        return picked[:limit]

    def _timeline_search(
        self,
        query_embedding: list[float],
        candidates: list[EmbeddedChunk],
        limit: int,
    ) -> list[RelevanceResult]:
        """Date-bearing chunks first, topped up by similarity, in page order."""
        dated = [c for c in candidates if _contains_date(c.chunk.content)]
        results = self._semantic_search(query_embedding, dated, int(limit * 0.7))

        chosen = {r.chunk.id for r in results}
        remaining = limit - len(results)
        if remaining > 0:
            rest = [c for c in candidates if c.chunk.id not in chosen]
            results.extend(self._semantic_search(query_embedding, rest, remaining))

        results.sort(key=lambda r: (r.chunk.page_number, r.chunk.chunk_index))
        return results

    def _page_search(
        self,
        query_embedding: list[float],
        candidates: list[EmbeddedChunk],
        limit: int,
        pages: list[int],
    ) -> list[RelevanceResult]:
        """Chunks of the named pages in reading order, then related context."""
        if not pages:
            return self._semantic_search(query_embedding, candidates, limit)

        wanted = set(pages)
        on_pages = sorted(
            (c for c in candidates if c.chunk.page_number in wanted),
            key=lambda c: (c.chunk.page_number, c.chunk.chunk_index),
        )[: max(limit - 2, 4)]

        missing = wanted - {c.chunk.page_number for c in on_pages}
        if missing:
            logger.debug(f"No chunks on pages {sorted(missing)}")

        results = [
            RelevanceResult(
                chunk=c.chunk,
                score=cosine_similarity(query_embedding, c.embedding),
            )
            for c in on_pages
        ]
        if len(results) < limit:
            results.extend(
                self._semantic_search(query_embedding, candidates, limit - len(results))
            )

        return _unique(results)[:limit]

    def _hybrid_search(
        self,
        query_embedding: list[float],
        candidates: list[EmbeddedChunk],
        limit: int,
        query: str,
    ) -> list[RelevanceResult]:
        """Mostly similarity matches, the rest literal keyword matches."""
        results = self._semantic_search(query_embedding, candidates, math.ceil(limit * 0.7))

        keywords = [word for word in query.lower().split() if len(word) > 3]
        if keywords:
            matches = sorted(
                (c for c in candidates if keywords[0] in c.chunk.content.lower()),
                key=lambda c: c.chunk.chunk_index,
            )[: math.ceil(limit * 0.3)]
            results.extend(
                RelevanceResult(
                    chunk=c.chunk,
                    score=cosine_similarity(query_embedding, c.embedding),
                )
                for c in matches
            )

        return _unique(results)[:limit]

    async def _first_chunks(self, document_id: str, k: int) -> list[RelevanceResult]:
        chunks = await self.store.get_chunks(document_id, limit=k)
        return [RelevanceResult(chunk=chunk, score=0.0) for chunk in chunks]


def _unique(results: list[RelevanceResult]) -> list[RelevanceResult]:
    """Drop repeated chunks, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for result in results:
        if result.chunk.id not in seen:
            seen.add(result.chunk.id)
            unique.append(result)
    return unique
