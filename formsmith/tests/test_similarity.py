"""Tests for cosine similarity scoring."""

import pytest

from formsmith.common.embedding_service import HashingVectorizer
from formsmith.common.similarity import batch_cosine_similarity, cosine_similarity


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_length_mismatch_scores_zero(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([1.0, 0.0], [0.0, 0.0]) == 0.0

    def test_empty_vectors(self):
        assert cosine_similarity([], []) == 0.0

    def test_symmetric(self):
        a, b = [0.3, 0.1, 0.9], [0.5, 0.7, 0.2]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_bounded_for_hashed_text(self):
        vectorizer = HashingVectorizer()
        texts = ["job application", "customer survey", "job application form", ""]
        vectors = [vectorizer.vectorize(t) for t in texts]
        for a in vectors:
            for b in vectors:
                assert -1.0 <= cosine_similarity(a, b) <= 1.0

    def test_self_similarity_of_hashed_text(self):
        vec = HashingVectorizer().vectorize("medical appointment booking")
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)


class TestBatchCosineSimilarity:
    def test_matches_pairwise(self):
        query = [0.2, 0.4, 0.1]
        rows = [[0.2, 0.4, 0.1], [1.0, 0.0, 0.0], [0.0, 0.0, 0.0]]
        expected = [cosine_similarity(query, r) for r in rows]
        assert batch_cosine_similarity(query, rows) == pytest.approx(expected)

    def test_mismatched_rows_score_zero(self):
        scores = batch_cosine_similarity([1.0, 0.0], [[1.0, 0.0], [1.0, 0.0, 0.0]])
        assert scores[0] == pytest.approx(1.0)
        assert scores[1] == 0.0

    def test_zero_query(self):
        assert batch_cosine_similarity([0.0, 0.0], [[1.0, 0.0]]) == [0.0]

    def test_empty_rows(self):
        assert batch_cosine_similarity([1.0], []) == []
