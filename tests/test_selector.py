"""Tests for relevance scoring and selection."""

import pytest

from readly.rag import RelevanceResult, cosine_similarity, drop_near_duplicates, select_top_k


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self):
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([1.0, 1.0], [0.0, 0.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


class TestSelectTopK:
    """Tests for select_top_k."""

    def test_sorted_by_score(self, make_embedded):
        candidates = [
            make_embedded(0, [0.0, 1.0]),
            make_embedded(1, [1.0, 0.0]),
            make_embedded(2, [1.0, 1.0]),
        ]

        results = select_top_k([1.0, 0.0], candidates, 2)

        assert [r.chunk.chunk_index for r in results] == [1, 2]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.7071, abs=1e-4)

    def test_scores_non_increasing(self, make_embedded):
        candidates = [make_embedded(i, [float(i), 10.0 - i]) for i in range(10)]

        results = select_top_k([1.0, 0.2], candidates, 10)

        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_ties_broken_by_chunk_index(self, make_embedded):
        candidates = [
            make_embedded(3, [1.0, 0.0]),
            make_embedded(1, [2.0, 0.0]),
            make_embedded(2, [0.5, 0.0]),
        ]

        results = select_top_k([1.0, 0.0], candidates, 3)

        assert [r.chunk.chunk_index for r in results] == [1, 2, 3]

    def test_k_larger_than_candidates(self, make_embedded):
        candidates = [make_embedded(0, [0.0, 1.0]), make_embedded(1, [1.0, 0.0])]

        results = select_top_k([1.0, 0.0], candidates, 10)

        assert len(results) == 2
        assert [r.chunk.chunk_index for r in results] == [1, 0]

    def test_zero_query_scores_zero(self, make_embedded):
        candidates = [make_embedded(1, [1.0, 0.0]), make_embedded(0, [0.0, 1.0])]

        results = select_top_k([0.0, 0.0], candidates, 2)

        assert [r.score for r in results] == [0.0, 0.0]
        assert [r.chunk.chunk_index for r in results] == [0, 1]

    def test_empty_inputs(self, make_embedded):
        assert select_top_k([1.0], [], 5) == []
        assert select_top_k([1.0], [make_embedded(0, [1.0])], 0) == []


class TestDropNearDuplicates:
    """Tests for drop_near_duplicates."""

    def _result(self, make_chunk, index, content, score):
        return RelevanceResult(chunk=make_chunk(index, content), score=score)

    def test_drops_repeated_text(self, make_chunk):
        results = [
            self._result(make_chunk, 0, "revenue grew twelve percent in the third quarter", 0.9),
            self._result(make_chunk, 5, "Revenue grew twelve percent in the third quarter", 0.8),
            self._result(make_chunk, 2, "hiring slowed across regional offices", 0.7),
        ]

        kept = drop_near_duplicates(results)

        assert [r.chunk.chunk_index for r in kept] == [0, 2]

    def test_keeps_partial_overlap(self, make_chunk):
        results = [
            self._result(make_chunk, 0, "one two three four five", 0.9),
            self._result(make_chunk, 1, "one two three six seven", 0.8),
        ]

        assert len(drop_near_duplicates(results)) == 2
        assert len(drop_near_duplicates(results, threshold=0.2)) == 1
