"""Embedding comparison: cosine similarity, Euclidean distance, best match."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from .config_manager import ConfigManager

DEFAULT_THRESHOLD = 0.8


def _as_vector(embedding: Sequence[float]) -> np.ndarray:
    return np.asarray(embedding, dtype=np.float64).reshape(-1)


def cosine_similarity(embedding1: Sequence[float], embedding2: Sequence[float]) -> float:
    """
    Cosine similarity between two embeddings
    Returns 0.0 when the lengths differ or either vector has zero norm
    """
    vec1 = _as_vector(embedding1)
    vec2 = _as_vector(embedding2)
    if vec1.size != vec2.size:
        return 0.0

    denom = float(np.linalg.norm(vec1) * np.linalg.norm(vec2))
    if denom == 0.0:
        return 0.0
    return float(np.dot(vec1, vec2) / denom)


def euclidean_distance(embedding1: Sequence[float], embedding2: Sequence[float]) -> float:
    """Euclidean distance, +inf when the lengths differ"""
    vec1 = _as_vector(embedding1)
    vec2 = _as_vector(embedding2)
    if vec1.size != vec2.size:
        return math.inf
    return float(np.linalg.norm(vec1 - vec2))


def is_same_face(
    embedding1: Sequence[float],
    embedding2: Sequence[float],
    threshold: float = DEFAULT_THRESHOLD,
) -> bool:
    return cosine_similarity(embedding1, embedding2) >= threshold


def best_similarity(embedding: Sequence[float], embeddings: Sequence[Sequence[float]]) -> float:
    """Highest cosine similarity against a set, 0.0 for an empty set"""
    best = 0.0
    for candidate in embeddings:
        similarity = cosine_similarity(embedding, candidate)
        if similarity > best:
            best = similarity
    return best


def is_same_face_multiple(
    embedding: Sequence[float],
    embeddings: Sequence[Sequence[float]],
    threshold: float = DEFAULT_THRESHOLD,
) -> bool:
    return best_similarity(embedding, embeddings) >= threshold


class EmbeddingComparator:
    """Comparator bound to a configured decision threshold"""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold

    @classmethod
    def from_config(cls, config: "ConfigManager") -> "EmbeddingComparator":
        return cls(threshold=float(config.get("recognition.threshold", DEFAULT_THRESHOLD)))

    cosine_similarity = staticmethod(cosine_similarity)
    euclidean_distance = staticmethod(euclidean_distance)
    best_similarity = staticmethod(best_similarity)

    def is_same_face(self, embedding1: Sequence[float], embedding2: Sequence[float]) -> bool:
        return is_same_face(embedding1, embedding2, self.threshold)

    def is_same_face_multiple(
        self, embedding: Sequence[float], embeddings: Sequence[Sequence[float]]
    ) -> bool:
        return is_same_face_multiple(embedding, embeddings, self.threshold)
