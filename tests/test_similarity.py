"""
Similarity Tests

Cosine similarity properties and top-K selection.
"""

import random

import pytest

from docqa_server.core.errors import RetrievalError
from docqa_server.retrieval.similarity import cosine_similarity, rank, top_k
from docqa_server.documents.models import ScoredChunk


def _random_vector(rng, dims=8):
    while True:
        vector = [rng.uniform(-1.0, 1.0) for _ in range(dims)]
        if any(vector):
            return vector


class TestCosineSimilarity:
    @pytest.mark.parametrize("seed", range(10))
    def test_symmetric_and_bounded(self, seed):
        rng = random.Random(seed)
        a, b = _random_vector(rng), _random_vector(rng)

        forward = cosine_similarity(a, b)

        assert forward == pytest.approx(cosine_similarity(b, a))
        assert -1.0 <= forward <= 1.0

    @pytest.mark.parametrize("seed", range(5))
    def test_identical_vectors_score_one(self, seed):
        vector = _random_vector(random.Random(seed), dims=1536)
        assert cosine_similarity(vector, vector) == pytest.approx(1.0)

    def test_opposite_and_orthogonal(self):
        assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
        assert cosine_similarity([1, 0], [0, 3]) == pytest.approx(0.0)

    def test_length_mismatch(self):
        with pytest.raises(RetrievalError):
            cosine_similarity([1, 2, 3], [1, 2])

    def test_zero_magnitude(self):
        with pytest.raises(RetrievalError) as exc:
            cosine_similarity([0, 0], [1, 1])
        assert "magnitude" in exc.value.message

    def test_empty_vector(self):
        with pytest.raises(RetrievalError):
            cosine_similarity([], [])


class TestTopK:
    def setup_method(self):
        self.candidates = [[1, 0], [0.9, 0.1], [0, 1], [-1, 0], [0.5, 0.5]]
        self.texts = ["east", "mostly east", "north", "west", "north-east"]

    def test_returns_best_matches_in_order(self):
        result = top_k([1, 0], self.candidates, self.texts, 2)

        assert [r.text for r in result] == ["east", "mostly east"]
        assert [r.index for r in result] == [0, 1]

    @pytest.mark.parametrize("k", [0, 1, 3, 5, 50])
    def test_size_and_monotonic_scores(self, k):
        result = top_k([0.3, 0.7], self.candidates, self.texts, k)

        assert len(result) <= min(k, len(self.candidates))
        scores = [r.score for r in result]
        assert scores == sorted(scores, reverse=True)

    def test_k_larger_than_candidates_is_clamped(self):
        assert len(top_k([1, 0], self.candidates, self.texts, 99)) == 5

    def test_no_candidates(self):
        assert top_k([1, 0], [], [], 3) == []

    def test_count_mismatch(self):
        with pytest.raises(RetrievalError):
            top_k([1, 0], self.candidates, self.texts[:2], 2)

    def test_invalid_query(self):
        with pytest.raises(RetrievalError):
            top_k([], self.candidates, self.texts, 2)

    def test_candidate_with_zero_magnitude(self):
        with pytest.raises(RetrievalError):
            top_k([1, 0], [[0, 0]], ["empty"], 1)


def test_rank_breaks_ties_by_index():
    ranked = rank([
        ScoredChunk("b", 0.5, 3),
        ScoredChunk("a", 0.5, 1),
        ScoredChunk("c", 0.9, 7),
    ])
    assert [r.index for r in ranked] == [7, 1, 3]
