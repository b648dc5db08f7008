"""In-memory vector index with cosine similarity."""

from __future__ import annotations

import math
from array import array
from typing import Iterable, Sequence


def vector_to_bytes(vector: Sequence[float]) -> bytes:
    """Pack a vector as float32 for BLOB storage."""
    return array("f", vector).tobytes()


def bytes_to_vector(blob: bytes) -> list[float]:
    floats = array("f")
    floats.frombytes(blob)
    return list(floats)


class VectorIndex:
    """Fixed-width vectors keyed by id; cosine similarity over a chosen subset."""

    def __init__(self, dim: int) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        self.dim = dim
        self._vectors: dict[str, list[float]] = {}
        self._norms: dict[str, float] = {}

    def upsert(self, ids: Sequence[str], vectors: Sequence[Sequence[float]]) -> None:
        """Insert or replace vectors; all are checked before any is stored."""
        if len(ids) != len(vectors):
            raise ValueError("ids and vectors must have the same length")
        for vector in vectors:
            self.check_dim(vector)
        for identifier, vector in zip(ids, vectors):
            values = [float(value) for value in vector]
            self._vectors[identifier] = values
            self._norms[identifier] = _norm(values)

    def similarities(self, vector: Sequence[float], ids: Iterable[str] | None = None) -> dict[str, float]:
        """Cosine similarity of ``vector`` against each indexed id (0.0 for zero vectors)."""
        self.check_dim(vector)
        query_norm = _norm(vector)
        targets = self._vectors.keys() if ids is None else ids
        scores: dict[str, float] = {}
        for identifier in targets:
            stored = self._vectors.get(identifier)
            if stored is None:
                continue
            denominator = query_norm * self._norms[identifier]
            scores[identifier] = _dot(stored, vector) / denominator if denominator else 0.0
        return scores

    def check_dim(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dim:
            raise ValueError(f"Vector dimension mismatch: expected {self.dim}, got {len(vector)}")


def _dot(a: Sequence[float], b: Sequence[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(_dot(vector, vector))


__all__ = ["VectorIndex", "vector_to_bytes", "bytes_to_vector"]
