"""Tests for the SQLite hybrid search index."""

from __future__ import annotations

from pathlib import Path

import pytest

from agent_memory.core.errors import NotFoundError, StorageError, ValidationError
from agent_memory.models.entities import Note, SessionMeta
from agent_memory.providers.embeddings import HashedEmbeddings
from agent_memory.retrieval.base import SearchIndex
from agent_memory.retrieval.search import SQLiteSearchIndex

EMBEDDER = HashedEmbeddings()
CREATED = "2024-01-01T00:00:00.000Z"


def _session(session_id: str, summary: str, updated: str = CREATED, chunks: int = 1) -> SessionMeta:
    return SessionMeta(
        id=session_id,
        summary=summary,
        key_facts=[],
        chunks=chunks,
        message_count=chunks,
        created_at=CREATED,
        updated_at=updated,
    )


def _note(note_id: str, content: str, updated: str = CREATED) -> Note:
    return Note(note_id, f"title {note_id}", content, ["tag"], CREATED, updated)


@pytest.fixture
async def index(tmp_path: Path):
    instance = SQLiteSearchIndex(tmp_path / "index.db", dimensions=EMBEDDER.dimensions)
    await instance.init()
    yield instance
    if not instance.db.closed:
        await instance.close()


async def _add_session(index: SQLiteSearchIndex, meta: SessionMeta) -> None:
    await index.index_session(meta.id, meta.summary, EMBEDDER.encode(meta.summary), meta)


async def _add_note(index: SQLiteSearchIndex, note: Note) -> None:
    await index.index_memory(note.id, note.content, EMBEDDER.encode(note.content), note)


async def _search(index: SQLiteSearchIndex, query: str, **kwargs):
    return await index.search(query, EMBEDDER.encode(query), **kwargs)


def test_index_satisfies_protocol(tmp_path: Path) -> None:
    assert isinstance(SQLiteSearchIndex(tmp_path / "index.db", dimensions=4), SearchIndex)


async def test_init_is_idempotent(index: SQLiteSearchIndex) -> None:
    await index.init()
    assert await _search(index, "anything") == []


async def test_search_merges_collections_with_normalized_scores(index: SQLiteSearchIndex) -> None:
    await _add_session(index, _session("s1", "user prefers dark mode in the editor", chunks=3))
    await _add_session(index, _session("s2", "discussion about lunch plans"))
    await _add_note(index, _note("memory-1", "dark mode everywhere"))

    results = await _search(index, "dark mode")
    assert {r.id for r in results[:2]} == {"s1", "memory-1"}
    assert results[-1].id == "s2"
    assert all(0.0 < r.score <= 1.0 for r in results)
    assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

    by_id = {r.id: r for r in results}
    assert by_id["s1"].type == "session"
    assert by_id["s1"].chunks == 3
    assert by_id["memory-1"].type == "memory"
    assert by_id["memory-1"].chunks == 1
    assert by_id["memory-1"].title == "title memory-1"
    assert by_id["memory-1"].tags == ["tag"]
    assert by_id["memory-1"].summary == "dark mode everywhere"


async def test_identical_text_and_vector_scores_one(index: SQLiteSearchIndex) -> None:
    await _add_note(index, _note("memory-1", "exact phrase"))
    [result] = await _search(index, "exact phrase")
    assert result.score == pytest.approx(1.0)


async def test_limit_and_type_filter(index: SQLiteSearchIndex) -> None:
    await _add_session(index, _session("s1", "alpha beta"))
    await _add_session(index, _session("s2", "alpha gamma"))
    await _add_note(index, _note("memory-1", "alpha delta"))

    assert len(await _search(index, "alpha", limit=2)) == 2
    assert {r.type for r in await _search(index, "alpha", type="session")} == {"session"}
    assert [r.id for r in await _search(index, "alpha", type="memory")] == ["memory-1"]
    assert len(await _search(index, "alpha", type="all")) == 3
    with pytest.raises(ValidationError):
        await _search(index, "alpha", limit=0)


async def test_default_limit_applies(tmp_path: Path) -> None:
    index = SQLiteSearchIndex(tmp_path / "index.db", dimensions=EMBEDDER.dimensions, default_limit=2)
    await index.init()
    for idx in range(4):
        await _add_note(index, _note(f"memory-{idx}", "same words"))
    assert len(await _search(index, "same words")) == 2
    await index.close()


async def test_ties_break_by_newer_update_then_id(index: SQLiteSearchIndex) -> None:
    await _add_note(index, _note("memory-b", "tied text", updated="2024-03-01T00:00:00.000Z"))
    await _add_note(index, _note("memory-a", "tied text", updated="2024-03-01T00:00:00.000Z"))
    await _add_note(index, _note("memory-c", "tied text", updated="2024-05-01T00:00:00.000Z"))

    first = [r.id for r in await _search(index, "tied text")]
    second = [r.id for r in await _search(index, "tied text")]
    assert first == ["memory-c", "memory-a", "memory-b"]
    assert first == second


async def test_duplicate_index_and_missing_update(index: SQLiteSearchIndex) -> None:
    await _add_session(index, _session("s1", "hello"))
    with pytest.raises(StorageError):
        await _add_session(index, _session("s1", "hello again"))
    with pytest.raises(NotFoundError):
        meta = _session("s9", "missing")
        await index.update_session("s9", meta.summary, EMBEDDER.encode(meta.summary), meta)
    with pytest.raises(NotFoundError):
        note = _note("memory-9", "missing")
        await index.update_memory(note.id, note.content, EMBEDDER.encode(note.content), note)


async def test_update_replaces_text(index: SQLiteSearchIndex) -> None:
    await _add_note(index, _note("memory-1", "old words"))
    note = _note("memory-1", "fresh content", updated="2024-02-01T00:00:00.000Z")
    await index.update_memory(note.id, note.content, EMBEDDER.encode(note.content), note)

    [result] = await _search(index, "fresh content")
    assert result.summary == "fresh content"
    assert result.timestamp == "2024-02-01T00:00:00.000Z"


async def test_removed_entries_never_returned(index: SQLiteSearchIndex) -> None:
    await _add_session(index, _session("s1", "secret plans"))
    await _add_note(index, _note("memory-1", "secret plans"))
    await index.remove("s1")
    await index.remove("memory-1")
    await index.remove("unknown-id")

    for query in ("secret plans", "secret", "", "unrelated"):
        assert await _search(index, query) == []


async def test_index_persists_across_reopen(tmp_path: Path) -> None:
    path = tmp_path / "index.db"
    index = SQLiteSearchIndex(path, dimensions=EMBEDDER.dimensions)
    await index.init()
    await _add_session(index, _session("s1", "persistent summary"))
    await _add_note(index, _note("memory-1", "persistent note"))
    await index.remove("memory-1")
    await index.close()

    reopened = SQLiteSearchIndex(path, dimensions=EMBEDDER.dimensions)
    await reopened.init()
    assert [r.id for r in await _search(reopened, "persistent")] == ["s1"]
    with pytest.raises(StorageError):
        await _add_session(reopened, _session("s1", "again"))
    await reopened.close()


async def test_dimension_mismatch_on_reopen(tmp_path: Path) -> None:
    path = tmp_path / "index.db"
    index = SQLiteSearchIndex(path, dimensions=EMBEDDER.dimensions)
    await index.init()
    await index.close()

    other = SQLiteSearchIndex(path, dimensions=8)
    with pytest.raises(StorageError):
        await other.init()


async def test_wrong_embedding_width_rejected(index: SQLiteSearchIndex) -> None:
    meta = _session("s1", "text")
    with pytest.raises(ValidationError):
        await index.index_session("s1", "text", [1.0, 0.0], meta)
    with pytest.raises(ValidationError):
        await index.search("text", [1.0])


async def test_calls_after_close_fail(index: SQLiteSearchIndex) -> None:
    await index.close()
    with pytest.raises(StorageError):
        await _search(index, "anything")
    with pytest.raises(StorageError):
        await _add_note(index, _note("memory-1", "text"))
    with pytest.raises(StorageError):
        await index.close()


async def test_calls_before_init_fail(tmp_path: Path) -> None:
    index = SQLiteSearchIndex(tmp_path / "index.db", dimensions=EMBEDDER.dimensions)
    with pytest.raises(StorageError):
        await _search(index, "anything")
