"""Tests for the chunk-count formula."""

import pytest

from agent_memory.storage.sessions import chunk_count, reported_chunks


@pytest.mark.parametrize(
    ("messages", "size", "expected"),
    [(0, 50, 0), (1, 50, 1), (50, 50, 1), (51, 50, 2), (100, 50, 2), (101, 50, 3), (7, 1, 7)],
)
def test_chunk_count_is_ceiling(messages: int, size: int, expected: int) -> None:
    assert chunk_count(messages, size) == expected


def test_reported_chunks_never_below_one() -> None:
    assert reported_chunks(0, 50) == 1
    assert reported_chunks(120, 50) == 3


def test_chunk_count_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        chunk_count(10, 0)
    with pytest.raises(ValueError):
        chunk_count(-1, 50)
