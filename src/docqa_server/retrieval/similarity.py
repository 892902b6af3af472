"""
Similarity Ranking

Cosine similarity and top-K selection over in-memory embedding vectors.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ..core.errors import RetrievalError
from ..documents.models import RetrievalResult, ScoredChunk


def _as_vector(values: Sequence[float], name: str) -> np.ndarray:
    vector = np.asarray(values, dtype="float64")
    if vector.ndim != 1 or vector.size == 0:
        raise RetrievalError(f"Invalid {name}: vectors must be non-empty arrays")
    return vector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    ``dot(a, b) / (|a| * |b|)``.

    Raises
    ------
    RetrievalError
        If either vector is empty, lengths differ, or a magnitude is zero.
    """
    va = _as_vector(a, "vector")
    vb = _as_vector(b, "vector")
    if va.shape != vb.shape:
        raise RetrievalError("Vectors must have the same length")

    mag_a = float(np.linalg.norm(va))
    mag_b = float(np.linalg.norm(vb))
    if mag_a == 0.0 or mag_b == 0.0:
        raise RetrievalError("Invalid vectors: magnitude cannot be zero")

    score = float(np.dot(va, vb) / (mag_a * mag_b))
    # Rounding can push identical vectors a hair past 1.0.
    return max(-1.0, min(1.0, score))


def rank(scored: List[ScoredChunk]) -> RetrievalResult:
    """Sort by score descending; ties keep ascending chunk index."""
    return sorted(scored, key=lambda item: (-item.score, item.index))


def top_k(
    query: Sequence[float],
    candidates: Sequence[Sequence[float]],
    texts: Sequence[str],
    k: int,
) -> RetrievalResult:
    """
    Return the ``k`` candidates most similar to ``query``.

    ``k`` larger than the candidate count is clamped to it; ``k <= 0``
    yields an empty result.
    """
    if len(candidates) != len(texts):
        raise RetrievalError("Number of embeddings must match number of chunks")

    _as_vector(query, "query embedding")
    if k <= 0 or not candidates:
        return []

    scored = [
        ScoredChunk(text=text, score=cosine_similarity(query, vector), index=index)
        for index, (vector, text) in enumerate(zip(candidates, texts))
    ]
    return rank(scored)[: min(k, len(scored))]
