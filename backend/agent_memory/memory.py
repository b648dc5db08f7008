"""Public entry point for agent memory operations."""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

import pydantic

from agent_memory.core.config import Settings, validate_settings
from agent_memory.core.errors import NotFoundError, StorageError, ValidationError
from agent_memory.core.logging import get_logger
from agent_memory.ingest.pipeline import IngestPipeline
from agent_memory.models.dto import (
    IngestResponse,
    ReadOptions,
    ReadResult,
    SearchOptions,
    SearchResult,
    SessionInput,
    UpdateRequest,
    WriteRequest,
)
from agent_memory.models.entities import SessionMeta
from agent_memory.providers.base import EmbeddingsProvider, SummarizerProvider
from agent_memory.providers.embeddings import create_embeddings_provider
from agent_memory.providers.summarizer import create_summarizer_provider
from agent_memory.retrieval.base import SearchIndex
from agent_memory.retrieval.search import SQLiteSearchIndex
from agent_memory.storage.base import NoteStorage, SessionStorage
from agent_memory.storage.notes import MarkdownNoteStorage
from agent_memory.storage.sessions import JSONLSessionStorage, chunk_count, reported_chunks
from agent_memory.utils.time import later_of, utc_now_iso

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _coerce(model: type[ModelT], value: ModelT | Mapping[str, Any] | None, what: str) -> ModelT:
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value or {})
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid {what}", exc.errors(include_url=False)) from exc


class Memory:
    """Sessions and notes with hybrid search and chunked reads.

    Build instances with :meth:`init`; close them with :meth:`close` or use the
    instance as an async context manager::

        async with await Memory.init(settings) as memory:
            await memory.ingest_session({"id": "s1", "messages": [...]})
            results = await memory.search("dark mode")
    """

    def __init__(
        self,
        settings: Settings,
        sessions: SessionStorage,
        notes: NoteStorage,
        index: SearchIndex,
        embeddings: EmbeddingsProvider,
        summarizer: SummarizerProvider,
        owned_providers: tuple[object, ...] = (),
    ) -> None:
        self.settings = settings
        self.sessions = sessions
        self.notes = notes
        self.index = index
        self.embeddings = embeddings
        self.summarizer = summarizer
        self.pipeline = IngestPipeline(
            sessions=sessions,
            index=index,
            embeddings=embeddings,
            summarizer=summarizer,
            chunk_size=settings.chunk_size,
        )
        self._owned_providers = owned_providers
        self._closed = False

    @classmethod
    async def init(
        cls,
        settings: Settings | Mapping[str, Any] | None = None,
        *,
        embeddings: EmbeddingsProvider | None = None,
        summarizer: SummarizerProvider | None = None,
        sessions: SessionStorage | None = None,
        notes: NoteStorage | None = None,
        index: SearchIndex | None = None,
    ) -> "Memory":
        """Validate settings, create storage directories, and open the index.

        Any component may be injected; the rest are built from ``settings``.
        Providers built here are closed by :meth:`close`.
        """
        resolved = validate_settings(settings if settings is not None else {})
        owned: list[object] = []
        if embeddings is None:
            embeddings = create_embeddings_provider(resolved.embeddings)
            owned.append(embeddings)
        if summarizer is None:
            summarizer = create_summarizer_provider(resolved.summarizer)
            owned.append(summarizer)
        try:
            if sessions is None:
                sessions = JSONLSessionStorage(resolved.sessions_dir)
            if notes is None:
                notes = MarkdownNoteStorage(resolved.memories_dir)
        except OSError as exc:
            raise StorageError(f"Failed to create storage under {resolved.storage_path}", exc) from exc
        if index is None:
            index = SQLiteSearchIndex(
                resolved.index_path,
                dimensions=embeddings.dimensions,
                hybrid_weight=resolved.search.hybrid_weight,
                default_limit=resolved.search.default_limit,
            )
        await index.init()
        logger.info("Memory ready at %s", resolved.storage_path)
        return cls(resolved, sessions, notes, index, embeddings, summarizer, tuple(owned))

    async def __aenter__(self) -> "Memory":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def ingest_session(self, session: SessionInput | Mapping[str, Any]) -> IngestResponse:
        """Append the session's messages, re-summarize, and (re)index it."""
        self._check_open()
        return await self.pipeline.ingest_session(session)

    async def search(
        self, query: str, options: SearchOptions | Mapping[str, Any] | None = None
    ) -> list[SearchResult]:
        """Hybrid keyword + vector search over sessions and notes."""
        self._check_open()
        opts = _coerce(SearchOptions, options, "search options")
        if not isinstance(query, str):
            raise ValidationError("query must be a string")
        embedding = await self.embeddings.embed(query)
        return await self.index.search(query, embedding, limit=opts.limit, type=opts.type)

    async def read(self, item_id: str, options: ReadOptions | Mapping[str, Any] | None = None) -> ReadResult:
        """Read one chunk of a session, or the whole content of a note.

        Deleted items stay readable by id. A chunk past the end of a session is
        rejected. Notes are a single chunk and ignore ``chunk``.
        """
        self._check_open()
        opts = _coerce(ReadOptions, options, "read options")
        if await self.sessions.exists(item_id):
            meta = await self.sessions.get_meta(item_id)
            if meta is not None:
                message_count = meta.message_count
                summary = meta.summary
            else:
                message_count = len(await self.sessions.read_all(item_id))
                summary = ""
            total_chunks = reported_chunks(message_count, self.settings.chunk_size)
            if opts.chunk >= total_chunks:
                raise ValidationError(
                    f"chunk {opts.chunk} out of range for session {item_id} ({total_chunks} chunks)"
                )
            messages = await self.sessions.read_chunk(item_id, opts.chunk, self.settings.chunk_size)
            return ReadResult(
                id=item_id,
                type="session",
                messages=messages,
                chunk_index=opts.chunk,
                total_chunks=total_chunks,
                summary=summary,
            )
        note = await self.notes.read(item_id)
        if note is not None:
            return ReadResult(
                id=note.id,
                type="memory",
                content=note.content,
                chunk_index=0,
                total_chunks=1,
                summary=note.title,
            )
        raise NotFoundError(item_id, "item")

    async def write(self, request: WriteRequest | Mapping[str, Any]) -> str:
        """Store a new note and index it; returns the generated id."""
        self._check_open()
        payload = _coerce(WriteRequest, request, "memory")
        embedding = await self.embeddings.embed(payload.content)
        note = await self.notes.create(payload.title, payload.content, payload.tags)
        await self.index.index_memory(note.id, note.content, embedding, note)
        logger.info("Wrote memory %s", note.id, extra={"ctx_id": note.id})
        return note.id

    async def update(self, memory_id: str, request: UpdateRequest | Mapping[str, Any]) -> None:
        """Merge the given fields into an existing note and re-index it."""
        self._check_open()
        payload = _coerce(UpdateRequest, request, "memory update")
        current = await self.notes.read(memory_id)
        if current is None:
            raise NotFoundError(memory_id, "memory")
        content = payload.content if payload.content is not None else current.content
        embedding = await self.embeddings.embed(content)
        note = await self.notes.update(
            memory_id, title=payload.title, content=payload.content, tags=payload.tags
        )
        try:
            await self.index.update_memory(note.id, note.content, embedding, note)
        except NotFoundError:
            logger.warning("Memory %s missing from index; indexing it now", note.id, extra={"ctx_id": note.id})
            await self.index.index_memory(note.id, note.content, embedding, note)
        logger.info("Updated memory %s", note.id, extra={"ctx_id": note.id})

    async def delete(self, item_id: str) -> None:
        """Soft-delete a session or note in storage and in the index."""
        self._check_open()
        if await self.sessions.exists(item_id):
            async with self.pipeline.session_lock(item_id):
                meta = await self.sessions.get_meta(item_id)
                if meta is None:
                    # First ingest failed before metadata was written.
                    meta = await self._placeholder_meta(item_id)
                meta.deleted = True
                meta.updated_at = later_of(utc_now_iso(), meta.updated_at)
                await self.sessions.set_meta(item_id, meta)
            entity = "session"
        elif await self.notes.exists(item_id):
            await self.notes.delete(item_id)
            entity = "memory"
        else:
            raise NotFoundError(item_id, "item")
        await self.index.remove(item_id)
        logger.info("Deleted %s %s", entity, item_id, extra={"ctx_id": item_id})

    async def close(self) -> None:
        """Close the index and any providers created by :meth:`init`."""
        if self._closed:
            return
        self._closed = True
        await self.index.close()
        for provider in self._owned_providers:
            aclose = getattr(provider, "aclose", None)
            if aclose is not None:
                await aclose()
        logger.info("Memory closed")

    @property
    def closed(self) -> bool:
        return self._closed

    async def _placeholder_meta(self, session_id: str) -> SessionMeta:
        messages = await self.sessions.read_all(session_id)
        now = utc_now_iso()
        return SessionMeta(
            id=session_id,
            summary="",
            key_facts=[],
            chunks=chunk_count(len(messages), self.settings.chunk_size),
            message_count=len(messages),
            created_at=now,
            updated_at=now,
        )

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError("Memory instance is closed")


__all__ = ["Memory"]
