"""Markdown-based note storage.

File format::

    # Title Here

    Content goes here...

    ---
    tags: tag1, tag2
    created: 2024-02-02T11:00:00.000Z
    updated: 2024-02-02T11:00:00.000Z
    deleted: false

The footer is mandatory: a file without it is malformed, not defaulted.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Sequence

from agent_memory.core.errors import NotFoundError, StorageError
from agent_memory.core.logging import get_logger
from agent_memory.models.entities import Note
from agent_memory.storage.paths import file_for, write_atomic
from agent_memory.utils.ids import new_memory_id
from agent_memory.utils.time import later_of, utc_now_iso

logger = get_logger(__name__)

NOTE_SUFFIX = ".md"
FOOTER_SEPARATOR = "\n\n---\n"
_MAX_ID_ATTEMPTS = 8


def format_note(note: Note) -> str:
    """Render a note in its on-disk markdown form."""
    lines = [
        f"# {note.title}",
        "",
        note.content,
        "",
        "---",
        f"tags: {', '.join(note.tags)}",
        f"created: {note.created_at}",
        f"updated: {note.updated_at}",
        f"deleted: {'true' if note.deleted else 'false'}",
    ]
    return "\n".join(lines) + "\n"


def parse_note(text: str, note_id: str) -> Note:
    """Parse the markdown form back into a :class:`Note`.

    Raises ``ValueError`` when the heading or footer is missing.
    """
    body, sep, footer = text.rpartition(FOOTER_SEPARATOR)
    if not sep:
        raise ValueError("missing footer")
    if not body.startswith("# "):
        raise ValueError("missing title heading")
    heading, _, rest = body.partition("\n")
    if rest and not rest.startswith("\n"):
        raise ValueError("expected a blank line after the title")
    meta = _parse_footer(footer)
    for key in ("created", "updated"):
        if not meta.get(key):
            raise ValueError(f"footer is missing '{key}'")
    deleted = meta.get("deleted", "false").lower()
    if deleted not in {"true", "false"}:
        raise ValueError(f"invalid deleted flag: {deleted!r}")
    tags_value = meta.get("tags", "")
    return Note(
        id=note_id,
        title=heading[2:],
        content=rest[1:],
        tags=[tag.strip() for tag in tags_value.split(",") if tag.strip()],
        created_at=meta["created"],
        updated_at=meta["updated"],
        deleted=deleted == "true",
    )


def _parse_footer(footer: str) -> dict[str, str]:
    result: dict[str, str] = {}
    for line in footer.split("\n"):
        key, colon, value = line.partition(":")
        if colon and key.strip():
            result[key.strip()] = value.strip()
    return result


class MarkdownNoteStorage:
    """One markdown file per note under ``base_path``."""

    def __init__(self, base_path: Path, id_factory: Callable[[], str] = new_memory_id) -> None:
        self.base_path = base_path.expanduser()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._id_factory = id_factory

    def note_path(self, note_id: str) -> Path:
        return file_for(self.base_path, note_id, NOTE_SUFFIX)

    async def create(self, title: str, content: str, tags: Sequence[str] | None = None) -> Note:
        return await asyncio.to_thread(self._create, title, content, list(tags or []))

    async def read(self, note_id: str) -> Note | None:
        return await asyncio.to_thread(self._read, note_id)

    async def update(
        self,
        note_id: str,
        *,
        title: str | None = None,
        content: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> Note:
        return await asyncio.to_thread(
            self._update, note_id, title, content, list(tags) if tags is not None else None
        )

    async def delete(self, note_id: str) -> Note:
        return await asyncio.to_thread(self._delete, note_id)

    async def list(self) -> list[str]:
        return await asyncio.to_thread(self._list)

    async def exists(self, note_id: str) -> bool:
        path = self.note_path(note_id)
        return await asyncio.to_thread(path.is_file)

    # Internal helpers -------------------------------------------------

    def _create(self, title: str, content: str, tags: list[str]) -> Note:
        note_id = self._unused_id()
        now = utc_now_iso()
        note = Note(
            id=note_id,
            title=title,
            content=content,
            tags=tags,
            created_at=now,
            updated_at=now,
            deleted=False,
        )
        self._write(note)
        return note

    def _unused_id(self) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if not self.note_path(candidate).exists():
                return candidate
            logger.warning("Generated note id %s already exists; retrying", candidate)
        raise StorageError(f"Could not generate an unused note id after {_MAX_ID_ATTEMPTS} attempts")

    def _read(self, note_id: str) -> Note | None:
        path = self.note_path(note_id)
        try:
            text = path.read_bytes().decode("utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read memory {note_id}", exc) from exc
        try:
            return parse_note(text, note_id)
        except ValueError as exc:
            raise StorageError(f"Malformed memory file {path.name}", exc) from exc

    def _require(self, note_id: str) -> Note:
        note = self._read(note_id)
        if note is None:
            raise NotFoundError(note_id, "memory")
        return note

    def _update(
        self,
        note_id: str,
        title: str | None,
        content: str | None,
        tags: list[str] | None,
    ) -> Note:
        note = self._require(note_id)
        if title is not None:
            note.title = title
        if content is not None:
            note.content = content
        if tags is not None:
            note.tags = tags
        note.updated_at = later_of(utc_now_iso(), note.updated_at)
        self._write(note)
        return note

    def _delete(self, note_id: str) -> Note:
        note = self._require(note_id)
        note.deleted = True
        note.updated_at = later_of(utc_now_iso(), note.updated_at)
        self._write(note)
        return note

    def _write(self, note: Note) -> None:
        path = self.note_path(note.id)
        try:
            write_atomic(path, format_note(note).encode("utf-8"))
        except OSError as exc:
            raise StorageError(f"Failed to write memory {note.id}", exc) from exc

    def _list(self) -> list[str]:
        ids: list[str] = []
        for path in sorted(self.base_path.glob(f"*{NOTE_SUFFIX}")):
            note = self._read(path.name[: -len(NOTE_SUFFIX)])
            if note is not None and not note.deleted:
                ids.append(note.id)
        return ids


__all__ = ["MarkdownNoteStorage", "format_note", "parse_note"]
