"""Hybrid search utilities: lexical ranking, distance blending and score normalization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from rank_bm25 import BM25Plus

from agent_memory.utils.text import tokenize


@dataclass(slots=True)
class RankedItem:
    identifier: str
    distance: float
    score: float


def normalize_score(distance: float) -> float:
    """Map a distance (lower is better) to a score in (0, 1]; 0 maps to 1."""
    if distance < 0:
        distance = 0.0
    return 1.0 / (1.0 + distance)


def bm25_rank(query: str, documents: Sequence[Tuple[str, str]]) -> dict[str, float]:
    """BM25 relevance per document id.

    Documents that share no term with the query score 0 so that BM25+'s
    lower-bound term does not credit them.
    """
    if not documents:
        return {}
    query_tokens = tokenize(query)
    corpus_tokens = [tokenize(text) for _, text in documents]
    if not query_tokens or not any(corpus_tokens):
        return {doc_id: 0.0 for doc_id, _ in documents}
    model = BM25Plus(corpus_tokens)
    scores = model.get_scores(query_tokens)
    query_terms = set(query_tokens)
    return {
        doc_id: float(score) if query_terms.intersection(tokens) else 0.0
        for (doc_id, _), tokens, score in zip(documents, corpus_tokens, scores)
    }


def lexical_distances(bm25_scores: dict[str, float]) -> dict[str, float]:
    """Turn BM25 scores into distances in [0, 1] relative to the best match."""
    best = max((score for score in bm25_scores.values() if score > 0), default=0.0)
    if best <= 0:
        return {doc_id: 1.0 for doc_id in bm25_scores}
    return {doc_id: 1.0 - max(score, 0.0) / best for doc_id, score in bm25_scores.items()}


def vector_distance(similarity: float) -> float:
    """Cosine distance in [0, 2]."""
    return 1.0 - max(-1.0, min(1.0, similarity))


def blend_distance(vector_dist: float, lexical_dist: float, weight: float) -> float:
    """Weighted blend; ``weight`` is the share given to the vector signal."""
    return weight * vector_dist + (1.0 - weight) * lexical_dist


__all__ = [
    "RankedItem",
    "blend_distance",
    "bm25_rank",
    "lexical_distances",
    "normalize_score",
    "vector_distance",
]
