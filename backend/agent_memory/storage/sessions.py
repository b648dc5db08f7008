"""JSONL-based session storage.

File structure::

    sessions/
    ├── {session_id}.jsonl       # messages, one JSON object per line
    └── {session_id}.meta.json   # metadata (summary, chunks, ...)

The log is append-only. Each ``append`` call issues a single write of all new
lines so a message is never written partially. Callers serialize appends to the
same session; appends to different sessions may run concurrently.
"""

from __future__ import annotations

import asyncio
from itertools import islice
from pathlib import Path
from typing import Iterator, Sequence

import orjson
import pydantic

from agent_memory.core.errors import NotFoundError, StorageError
from agent_memory.core.logging import get_logger
from agent_memory.models.dto import Message
from agent_memory.models.entities import SessionMeta
from agent_memory.storage.paths import file_for, write_atomic

logger = get_logger(__name__)

LOG_SUFFIX = ".jsonl"
META_SUFFIX = ".meta.json"


def chunk_count(message_count: int, chunk_size: int) -> int:
    """Number of ``chunk_size`` slices needed to hold ``message_count`` messages."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if message_count < 0:
        raise ValueError("message_count must be non-negative")
    return -(-message_count // chunk_size)


def reported_chunks(message_count: int, chunk_size: int) -> int:
    """Chunk count as shown to readers; an empty session still has one (empty) chunk."""
    return max(1, chunk_count(message_count, chunk_size))


class JSONLSessionStorage:
    """Session log store backed by one JSONL file and one JSON file per session."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path.expanduser()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def log_path(self, session_id: str) -> Path:
        return file_for(self.base_path, session_id, LOG_SUFFIX)

    def meta_path(self, session_id: str) -> Path:
        return file_for(self.base_path, session_id, META_SUFFIX)

    async def append(self, session_id: str, messages: Sequence[Message]) -> None:
        await asyncio.to_thread(self._append, session_id, list(messages))

    async def read_chunk(self, session_id: str, chunk_index: int, chunk_size: int) -> list[Message]:
        if chunk_index < 0 or chunk_size <= 0:
            raise ValueError("chunk_index must be >= 0 and chunk_size > 0")
        return await asyncio.to_thread(self._read_chunk, session_id, chunk_index, chunk_size)

    async def read_all(self, session_id: str) -> list[Message]:
        return await asyncio.to_thread(self._read_all, session_id)

    async def get_meta(self, session_id: str) -> SessionMeta | None:
        return await asyncio.to_thread(self._get_meta, session_id)

    async def set_meta(self, session_id: str, meta: SessionMeta) -> None:
        await asyncio.to_thread(self._set_meta, session_id, meta)

    async def exists(self, session_id: str) -> bool:
        path = self.log_path(session_id)
        return await asyncio.to_thread(path.is_file)

    async def list(self) -> list[str]:
        return await asyncio.to_thread(self._list)

    # Internal helpers -------------------------------------------------

    def _append(self, session_id: str, messages: list[Message]) -> None:
        path = self.log_path(session_id)
        payload = b"".join(
            orjson.dumps(message.model_dump(exclude_none=True)) + b"\n" for message in messages
        )
        try:
            with path.open("ab") as fh:
                if payload:
                    fh.write(payload)
        except OSError as exc:
            raise StorageError(f"Failed to append to session {session_id}", exc) from exc
        logger.debug("Appended %s messages to %s", len(messages), path.name)

    def _read_chunk(self, session_id: str, chunk_index: int, chunk_size: int) -> list[Message]:
        start = chunk_index * chunk_size
        with self._open_log(session_id) as lines:
            return list(islice(lines, start, start + chunk_size))

    def _read_all(self, session_id: str) -> list[Message]:
        with self._open_log(session_id) as lines:
            return list(lines)

    def _open_log(self, session_id: str) -> "_LogReader":
        path = self.log_path(session_id)
        if not path.is_file():
            raise NotFoundError(session_id, "session")
        return _LogReader(path, session_id)

    def _get_meta(self, session_id: str) -> SessionMeta | None:
        path = self.meta_path(session_id)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Failed to read metadata for session {session_id}", exc) from exc
        try:
            return SessionMeta.from_dict(orjson.loads(raw))
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed metadata for session {session_id}", exc) from exc

    def _set_meta(self, session_id: str, meta: SessionMeta) -> None:
        path = self.meta_path(session_id)
        try:
            write_atomic(path, orjson.dumps(meta.to_dict(), option=orjson.OPT_INDENT_2))
        except OSError as exc:
            raise StorageError(f"Failed to write metadata for session {session_id}", exc) from exc

    def _list(self) -> list[str]:
        return sorted(path.name[: -len(LOG_SUFFIX)] for path in self.base_path.glob(f"*{LOG_SUFFIX}"))


class _LogReader:
    """Context manager yielding parsed messages from a JSONL log lazily."""

    def __init__(self, path: Path, session_id: str) -> None:
        self.path = path
        self.session_id = session_id
        self._fh = None

    def __enter__(self) -> Iterator[Message]:
        try:
            self._fh = self.path.open("rb")
        except FileNotFoundError as exc:
            raise NotFoundError(self.session_id, "session") from exc
        except OSError as exc:
            raise StorageError(f"Failed to open session {self.session_id}", exc) from exc
        return self._iter_messages()

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._fh is not None:
            self._fh.close()

    def _iter_messages(self) -> Iterator[Message]:
        for lineno, line in enumerate(self._fh, start=1):
            if not line.strip():
                continue
            try:
                yield Message.model_validate(orjson.loads(line))
            except (orjson.JSONDecodeError, pydantic.ValidationError) as exc:
                raise StorageError(
                    f"Corrupt line {lineno} in session {self.session_id}", exc
                ) from exc


__all__ = ["JSONLSessionStorage", "chunk_count", "reported_chunks"]
