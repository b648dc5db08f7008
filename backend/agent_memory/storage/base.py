"""Storage contracts.

The default backends keep sessions as JSONL logs with a JSON metadata file and
notes as markdown files. Other backends (SQLite, PostgreSQL, ...) only need to
satisfy these protocols to be passed to :class:`agent_memory.memory.Memory`.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from agent_memory.models.dto import Message
from agent_memory.models.entities import Note, SessionMeta


@runtime_checkable
class SessionStorage(Protocol):
    """Append-only message log plus a metadata record per session."""

    async def append(self, session_id: str, messages: Sequence[Message]) -> None:
        """Append messages, creating the log if needed."""
        ...

    async def read_chunk(self, session_id: str, chunk_index: int, chunk_size: int) -> list[Message]:
        """Return messages ``[chunk_index * chunk_size, (chunk_index + 1) * chunk_size)``."""
        ...

    async def read_all(self, session_id: str) -> list[Message]:
        ...

    async def get_meta(self, session_id: str) -> SessionMeta | None:
        ...

    async def set_meta(self, session_id: str, meta: SessionMeta) -> None:
        ...

    async def exists(self, session_id: str) -> bool:
        ...

    async def list(self) -> list[str]:
        ...


@runtime_checkable
class NoteStorage(Protocol):
    """Single-chunk, versioned notes with a soft-delete tombstone."""

    async def create(self, title: str, content: str, tags: Sequence[str] | None = None) -> Note:
        ...

    async def read(self, note_id: str) -> Note | None:
        ...

    async def update(
        self,
        note_id: str,
        *,
        title: str | None = None,
        content: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> Note:
        ...

    async def delete(self, note_id: str) -> Note:
        ...

    async def list(self) -> list[str]:
        """Ids of notes that are not deleted."""
        ...

    async def exists(self, note_id: str) -> bool:
        """True for deleted notes as well."""
        ...


__all__ = ["SessionStorage", "NoteStorage"]
