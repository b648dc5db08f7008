"""Tests for the markdown note store."""

from __future__ import annotations

from itertools import chain, repeat
from pathlib import Path

import pytest

from agent_memory.core.errors import NotFoundError, StorageError
from agent_memory.models.entities import Note
from agent_memory.storage.base import NoteStorage
from agent_memory.storage.notes import MarkdownNoteStorage, format_note, parse_note


@pytest.fixture
def store(tmp_path: Path) -> MarkdownNoteStorage:
    return MarkdownNoteStorage(tmp_path / "memories")


@pytest.mark.parametrize(
    "note",
    [
        Note("memory-1", "Food", "Likes spicy Thai food.", ["food", "preference"], "2024-02-02T11:00:00.000Z", "2024-02-02T11:00:00.000Z"),
        Note("memory-2", "Empty", "", [], "2024-02-02T11:00:00.000Z", "2024-02-03T11:00:00.000Z", True),
        Note("memory-3", "Multi", "line one\n\nline three\n---\nnot a footer", ["x"], "2024-01-01T00:00:00.000Z", "2024-01-01T00:00:00.000Z"),
    ],
)
def test_format_parse_round_trip(note: Note) -> None:
    assert parse_note(format_note(note), note.id) == note


def test_format_matches_documented_layout() -> None:
    note = Note("memory-1", "T", "C", ["a", "b"], "2024-01-01T00:00:00.000Z", "2024-01-01T00:00:00.000Z")
    assert format_note(note) == (
        "# T\n\nC\n\n---\ntags: a, b\ncreated: 2024-01-01T00:00:00.000Z\n"
        "updated: 2024-01-01T00:00:00.000Z\ndeleted: false\n"
    )


def test_missing_footer_is_malformed() -> None:
    with pytest.raises(ValueError):
        parse_note("# Title\n\nBody only\n", "memory-1")


async def test_store_preserves_carriage_returns(store: MarkdownNoteStorage) -> None:
    content = "line1\r\nline2\rline3\r"
    note = await store.create("CRLF", content, ["x"])
    stored = await store.read(note.id)
    assert stored.content == content
    assert stored == note


def test_store_satisfies_protocol(store: MarkdownNoteStorage) -> None:
    assert isinstance(store, NoteStorage)


async def test_create_read_update_delete(store: MarkdownNoteStorage) -> None:
    note = await store.create("Prefs", "Dark mode", ["ui"])
    assert note.id.startswith("memory-")
    assert await store.read(note.id) == note

    updated = await store.update(note.id, content="Light mode")
    assert updated.title == "Prefs"
    assert updated.content == "Light mode"
    assert updated.tags == ["ui"]
    assert updated.updated_at >= updated.created_at

    deleted = await store.delete(note.id)
    assert deleted.deleted
    assert (await store.read(note.id)).content == "Light mode"
    assert await store.exists(note.id)
    assert await store.list() == []


async def test_missing_notes(store: MarkdownNoteStorage) -> None:
    assert await store.read("memory-missing") is None
    with pytest.raises(NotFoundError):
        await store.update("memory-missing", title="x")
    with pytest.raises(NotFoundError):
        await store.delete("memory-missing")


async def test_create_retries_taken_ids(tmp_path: Path) -> None:
    ids = chain(["memory-aaaaaaaa", "memory-aaaaaaaa"], ["memory-bbbbbbbb"])
    store = MarkdownNoteStorage(tmp_path / "memories", id_factory=lambda: next(ids))
    first = await store.create("one", "1")
    second = await store.create("two", "2")
    assert (first.id, second.id) == ("memory-aaaaaaaa", "memory-bbbbbbbb")


async def test_create_gives_up_when_ids_keep_colliding(tmp_path: Path) -> None:
    ids = repeat("memory-aaaaaaaa")
    store = MarkdownNoteStorage(tmp_path / "memories", id_factory=lambda: next(ids))
    await store.create("one", "1")
    with pytest.raises(StorageError):
        await store.create("two", "2")


async def test_malformed_file_is_storage_error(store: MarkdownNoteStorage) -> None:
    store.note_path("memory-broken").write_text("# Title\n\nno footer\n", encoding="utf-8")
    with pytest.raises(StorageError):
        await store.read("memory-broken")
