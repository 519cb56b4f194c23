"""Identify an embedding against the registered identities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import numpy as np

from .face_compare import DEFAULT_THRESHOLD, best_similarity
from .face_database import FaceStore

if TYPE_CHECKING:
    from .config_manager import ConfigManager


@dataclass(frozen=True)
class MatchResult:
    name: Optional[str]
    similarity: float
    accepted: bool


class FaceRecognizer:
    """Best match over every embedding of every registered identity"""

    def __init__(self, store: FaceStore, threshold: float = DEFAULT_THRESHOLD):
        self.store = store
        self.threshold = threshold

    @classmethod
    def from_config(cls, store: FaceStore, config: "ConfigManager") -> "FaceRecognizer":
        return cls(store, threshold=float(config.get("recognition.threshold", DEFAULT_THRESHOLD)))

    def rank(self, embedding: Sequence[float]) -> List[Tuple[str, float]]:
        """(name, best similarity) for every identity, best first"""
        query = np.asarray(embedding, dtype=np.float64).reshape(-1)
        scores = []
        for face in self.store.list_faces():
            # Embeddings of another dimension cannot be compared, leave them out
            comparable = [e for e in face.embeddings if len(e) == query.size]
            scores.append((face.name, best_similarity(query, comparable)))
        scores.sort(key=lambda item: item[1], reverse=True)
        return scores

    def recognize(self, embedding: Sequence[float], threshold: Optional[float] = None) -> MatchResult:
        """
        Recognize a face embedding
        Args:
            embedding: Query embedding
            threshold: Minimum similarity, the configured one if None
        Returns:
            MatchResult, name is None when nobody reaches the threshold
        """
        if threshold is None:
            threshold = self.threshold

        ranking = self.rank(embedding)
        if not ranking:
            return MatchResult(name=None, similarity=0.0, accepted=False)

        name, similarity = ranking[0]
        accepted = similarity >= threshold
        return MatchResult(name=name if accepted else None, similarity=similarity, accepted=accepted)
