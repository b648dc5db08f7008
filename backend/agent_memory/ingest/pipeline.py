"""Session ingest orchestration."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

import pydantic

from agent_memory.core.errors import NotFoundError, ValidationError
from agent_memory.core.logging import get_logger
from agent_memory.core.metrics import INGEST_DURATION
from agent_memory.models.dto import IngestResponse, SessionInput
from agent_memory.models.entities import SessionMeta
from agent_memory.providers.base import EmbeddingsProvider, SummarizerProvider
from agent_memory.retrieval.base import SearchIndex
from agent_memory.storage.base import SessionStorage
from agent_memory.storage.sessions import chunk_count
from agent_memory.utils.time import later_of, utc_now_iso

logger = get_logger(__name__)


def parse_session(session: SessionInput | Mapping[str, Any]) -> SessionInput:
    """Validate a raw session payload, raising :class:`ValidationError` on bad shape."""
    if isinstance(session, SessionInput):
        return session
    try:
        return SessionInput.model_validate(session)
    except pydantic.ValidationError as exc:
        raise ValidationError("Invalid session", exc.errors(include_url=False)) from exc


class IngestPipeline:
    """Append session messages, re-summarize, persist metadata, and index.

    ``messages`` are treated as new messages to append; callers must not
    resend messages that were already ingested. Ingests of the same session id
    run one at a time.
    """

    def __init__(
        self,
        sessions: SessionStorage,
        index: SearchIndex,
        embeddings: EmbeddingsProvider,
        summarizer: SummarizerProvider,
        chunk_size: int,
    ) -> None:
        if chunk_size <= 0:
            raise ValidationError("chunk_size must be positive")
        self.sessions = sessions
        self.index = index
        self.embeddings = embeddings
        self.summarizer = summarizer
        self.chunk_size = chunk_size
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    async def ingest_session(self, session: SessionInput | Mapping[str, Any]) -> IngestResponse:
        payload = parse_session(session)
        started = time.perf_counter()
        outcome = "failure"
        try:
            async with self.session_lock(payload.id):
                result = await self._ingest(payload)
            outcome = "success"
            return result
        finally:
            INGEST_DURATION.labels(outcome=outcome).observe(time.perf_counter() - started)

    # Internal helpers -------------------------------------------------

    async def _ingest(self, session: SessionInput) -> IngestResponse:
        existing = await self.sessions.exists(session.id)
        previous = await self.sessions.get_meta(session.id) if existing else None

        await self.sessions.append(session.id, session.messages)
        messages = await self.sessions.read_all(session.id)

        # Provider failures abort here; the appended messages stay in the log.
        summary = await self.summarizer.summarize(messages)
        embedding = await self.embeddings.embed(summary.summary)

        now = utc_now_iso()
        meta = SessionMeta(
            id=session.id,
            summary=summary.summary,
            key_facts=list(summary.key_facts),
            chunks=chunk_count(len(messages), self.chunk_size),
            message_count=len(messages),
            created_at=previous.created_at if previous else now,
            updated_at=later_of(now, previous.updated_at if previous else None),
            channel=session.channel if session.channel is not None else _prior(previous, "channel"),
            user_id=session.user_id if session.user_id is not None else _prior(previous, "user_id"),
            deleted=previous.deleted if previous else False,
        )
        await self.sessions.set_meta(session.id, meta)

        if existing:
            try:
                await self.index.update_session(session.id, meta.summary, embedding, meta)
            except NotFoundError:
                logger.warning(
                    "Session %s missing from index; indexing it now",
                    session.id,
                    extra={"ctx_id": session.id},
                )
                await self.index.index_session(session.id, meta.summary, embedding, meta)
        else:
            await self.index.index_session(session.id, meta.summary, embedding, meta)

        status = "updated" if existing else "created"
        logger.info(
            "Ingested session %s (%s, %s messages, %s chunks)",
            session.id,
            status,
            meta.message_count,
            meta.chunks,
            extra={"ctx_id": session.id},
        )
        return IngestResponse(id=session.id, status=status, message_count=meta.message_count, chunks=meta.chunks)

    @asynccontextmanager
    async def session_lock(self, session_id: str) -> AsyncIterator[None]:
        """Hold the per-session lock that serializes ingests of ``session_id``."""
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._waiters[session_id] = self._waiters.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[session_id] -= 1
            if not self._waiters[session_id]:
                del self._waiters[session_id]
                del self._locks[session_id]


def _prior(meta: SessionMeta | None, field: str) -> str | None:
    return getattr(meta, field) if meta is not None else None


__all__ = ["IngestPipeline", "parse_session"]
