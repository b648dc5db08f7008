"""Tests for the in-memory vector index."""

import pytest

from agent_memory.retrieval.vector_index import VectorIndex, bytes_to_vector, vector_to_bytes


def test_similarities_are_cosine() -> None:
    index = VectorIndex(dim=3)
    index.upsert(["a", "b", "z"], [[1.0, 0.0, 0.0], [0.0, 2.0, 0.0], [0.0, 0.0, 0.0]])
    scores = index.similarities([3.0, 0.0, 0.0])
    assert scores["a"] == pytest.approx(1.0)
    assert scores["b"] == pytest.approx(0.0)
    assert scores["z"] == 0.0
    assert index.similarities([1.0, 0.0, 0.0], ["b"]) == {"b": pytest.approx(0.0)}


def test_upsert_replaces() -> None:
    index = VectorIndex(dim=2)
    index.upsert(["a"], [[1.0, 0.0]])
    index.upsert(["a"], [[0.0, 1.0]])
    assert index.similarities([0.0, 1.0]) == {"a": pytest.approx(1.0)}


def test_dimension_mismatch_rejected() -> None:
    index = VectorIndex(dim=2)
    with pytest.raises(ValueError):
        index.upsert(["a"], [[1.0, 0.0, 0.0]])
    with pytest.raises(ValueError):
        index.similarities([1.0])


def test_blob_round_trip_is_float32() -> None:
    blob = vector_to_bytes([0.5, -1.25, 3.0])
    assert len(blob) == 12
    assert bytes_to_vector(blob) == [0.5, -1.25, 3.0]
