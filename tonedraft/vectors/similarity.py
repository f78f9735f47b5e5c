"""Cosine similarity helpers and the per-query similarity index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np


def unit_normalize(vector: np.ndarray) -> np.ndarray:
    vector = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return vector / norm


def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


def cosine_similarity(vec_a: np.ndarray, vec_b: np.ndarray) -> float:
    denominator = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if denominator == 0:
        return 0.0
    score = float(np.dot(vec_a, vec_b) / denominator)
    return float(np.clip(score, -1.0, 1.0))


@dataclass(slots=True)
class DualVectors:
    semantic: np.ndarray
    style: np.ndarray


@dataclass(slots=True)
class AxisScores:
    semantic: np.ndarray
    style: np.ndarray


class SimilarityIndex:
    """Row-normalised matrices for one candidate set.

    Built for a single query and discarded afterwards; never cache an instance.
    """

    def __init__(self, ids: Sequence[str], semantic_vectors: Sequence[np.ndarray], style_vectors: Sequence[np.ndarray]) -> None:
        self.ids: List[str] = list(ids)
        if self.ids:
            self._semantic = normalize_rows(np.vstack(semantic_vectors))
            self._style = normalize_rows(np.vstack(style_vectors))
        else:
            self._semantic = np.empty((0, 0))
            self._style = np.empty((0, 0))

    def __len__(self) -> int:
        return len(self.ids)

    def score(self, semantic_query: np.ndarray, style_query: np.ndarray) -> AxisScores:
        if not self.ids:
            return AxisScores(semantic=np.empty(0), style=np.empty(0))
        semantic = np.clip(self._semantic @ unit_normalize(semantic_query), -1.0, 1.0)
        style = np.clip(self._style @ unit_normalize(style_query), -1.0, 1.0)
        return AxisScores(semantic=semantic, style=style)
