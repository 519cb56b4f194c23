"""Tests for embedding comparison."""

import math

import numpy as np
import pytest

from face_enroll.face_compare import (
    EmbeddingComparator,
    best_similarity,
    cosine_similarity,
    euclidean_distance,
    is_same_face,
    is_same_face_multiple,
)
from tests.fakes import embedding


class TestCosineSimilarity:
    def test_self_similarity(self):
        e = embedding(1)
        assert cosine_similarity(e, e) == pytest.approx(1.0)

    def test_opposite(self):
        e = embedding(2)
        assert cosine_similarity(e, [-x for x in e]) == pytest.approx(-1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 3.0]) == pytest.approx(0.0)

    def test_length_mismatch(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_numpy_input(self):
        a = np.array([1.0, 2.0, 3.0], dtype=np.float32)
        assert cosine_similarity(a, a * 2) == pytest.approx(1.0)


class TestEuclideanDistance:
    def test_same(self):
        e = embedding(3)
        assert euclidean_distance(e, e) == 0.0

    def test_known(self):
        assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)

    def test_length_mismatch(self):
        assert euclidean_distance([1.0], [1.0, 2.0]) == math.inf


class TestDecisions:
    def test_is_same_face_threshold(self):
        assert is_same_face([1.0, 0.0], [1.0, 0.1])
        assert not is_same_face([1.0, 0.0], [0.0, 1.0])
        assert is_same_face([1.0, 0.0], [1.0, 1.0], threshold=0.7)
        assert not is_same_face([1.0, 0.0], [1.0, 1.0], threshold=0.75)

    def test_best_similarity_empty(self):
        assert best_similarity(embedding(4), []) == 0.0

    def test_best_similarity_contains_self(self):
        e = embedding(5)
        assert best_similarity(e, [e]) == pytest.approx(1.0)

    def test_best_similarity_picks_max(self):
        query = [1.0, 0.0]
        assert best_similarity(query, [[0.0, 1.0], [1.0, 1.0], [1.0, 0.2]]) == pytest.approx(
            cosine_similarity(query, [1.0, 0.2])
        )

    def test_is_same_face_multiple(self):
        e = embedding(6)
        assert is_same_face_multiple(e, [embedding(7), e])
        assert not is_same_face_multiple(e, [])


class TestEmbeddingComparator:
    def test_bound_threshold(self):
        comparator = EmbeddingComparator(threshold=0.95)
        assert not comparator.is_same_face([1.0, 0.0], [1.0, 0.5])
        assert comparator.is_same_face_multiple([1.0, 0.0], [[0.0, 1.0], [1.0, 0.01]])
        assert comparator.cosine_similarity([1.0], [1.0]) == pytest.approx(1.0)
