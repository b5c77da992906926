"""Cosine similarity ranking used by the in-process search path."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

# Results returned when nothing reaches the threshold
FALLBACK_RESULT_COUNT = 3


@dataclass
class SearchMatch:
    """A ranked search hit."""
    product_id: str
    similarity: float
    distance: float
    content_text: str

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "similarity": self.similarity,
            "distance": self.distance,
            "content": self.content_text,
        }


@dataclass
class StoredEmbedding:
    """A row read back from the embedding store."""
    product_id: str
    content_text: str
    embedding: list[float]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Returns 0.0 for zero-magnitude or differently sized vectors.
    """
    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    if a_arr.shape != b_arr.shape:
        return 0.0

    norm = float(np.linalg.norm(a_arr) * np.linalg.norm(b_arr))
    if norm == 0.0 or not np.isfinite(norm):
        return 0.0

    similarity = float(np.dot(a_arr, b_arr) / norm)
    if not np.isfinite(similarity):
        return 0.0
    return similarity


def rank_candidates(
    query_embedding: Sequence[float],
    candidates: Iterable[StoredEmbedding],
    limit: int,
    threshold: float,
) -> list[SearchMatch]:
    """
    Rank stored embeddings against a query.

    Args:
        query_embedding: The query vector
        candidates: Stored embeddings, consumed once
        limit: Maximum number of results
        threshold: Minimum similarity score

    Returns:
        Matches sorted by similarity descending; ties keep candidate order.
        When no candidate reaches the threshold, the best
        ``min(limit, FALLBACK_RESULT_COUNT)`` candidates are returned instead.
    """
    dimension = len(query_embedding)
    scored: list[SearchMatch] = []

    for candidate in candidates:
        # Foreign/stale model vectors are skipped silently
        if len(candidate.embedding) != dimension:
            continue
        similarity = cosine_similarity(query_embedding, candidate.embedding)
        scored.append(SearchMatch(
            product_id=candidate.product_id,
            similarity=similarity,
            distance=1.0 - similarity,
            content_text=candidate.content_text,
        ))

    if not scored:
        return []

    scored.sort(key=lambda m: m.similarity, reverse=True)

    matches = [m for m in scored if m.similarity >= threshold]
    if not matches:
        return scored[:min(limit, FALLBACK_RESULT_COUNT)]
    return matches[:limit]
