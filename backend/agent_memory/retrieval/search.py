"""SQLite-backed hybrid search index.

Rows live in ``index.db`` (tables ``sessions`` and ``memories``). At ``init()``
each table is loaded into an in-memory collection holding the searchable text
and the vector of every entry; writes go to SQLite first and then to the
collection, so the two never disagree after a successful call.

Ranking per collection blends cosine distance over vectors with a BM25-derived
lexical distance over the text field, then converts the blended distance with
:func:`normalize_score`. Both collections are merged on that common scale.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import orjson

from agent_memory.core.errors import NotFoundError, StorageError, ValidationError
from agent_memory.core.logging import get_logger
from agent_memory.core.metrics import INDEX_SIZE, SEARCH_LATENCY
from agent_memory.db.sqlite import SQLiteDatabase, iter_rows
from agent_memory.models.dto import ItemType, SearchResult, SearchType
from agent_memory.models.entities import Note, SessionMeta
from agent_memory.retrieval.hybrid import (
    RankedItem,
    blend_distance,
    bm25_rank,
    lexical_distances,
    normalize_score,
    vector_distance,
)
from agent_memory.retrieval.vector_index import VectorIndex, bytes_to_vector, vector_to_bytes
from agent_memory.utils.time import parse_iso

logger = get_logger(__name__)


@dataclass(slots=True)
class IndexEntry:
    id: str
    type: ItemType
    text: str
    created_at: str
    updated_at: str
    chunks: int
    message_count: int = 0
    deleted: bool = False
    title: str | None = None
    tags: list[str] | None = None
    channel: str | None = None
    user_id: str | None = None
    updated_ts: float = 0.0

    def __post_init__(self) -> None:
        try:
            self.updated_ts = parse_iso(self.updated_at).timestamp()
        except ValueError:
            self.updated_ts = 0.0

    def to_result(self, score: float) -> SearchResult:
        return SearchResult(
            id=self.id,
            type=self.type,
            summary=self.text,
            score=score,
            chunks=max(1, self.chunks),
            timestamp=self.updated_at,
            title=self.title,
            tags=list(self.tags) if self.tags is not None else None,
        )


class _Collection:
    """Entries of one table plus their vectors."""

    def __init__(self, name: str, item_type: ItemType, dim: int) -> None:
        self.name = name
        self.item_type = item_type
        self.entries: dict[str, IndexEntry] = {}
        self.vectors = VectorIndex(dim)

    def put(self, entry: IndexEntry, vector: Sequence[float]) -> None:
        self.vectors.upsert([entry.id], [vector])
        self.entries[entry.id] = entry

    def live(self) -> list[IndexEntry]:
        return [entry for entry in self.entries.values() if not entry.deleted]

    def rank(self, query: str, query_embedding: Sequence[float], weight: float) -> list[tuple[IndexEntry, RankedItem]]:
        live = self.live()
        if not live:
            return []
        lexical = lexical_distances(bm25_rank(query, [(entry.id, entry.text) for entry in live]))
        similarities = self.vectors.similarities(query_embedding, [entry.id for entry in live])
        ranked: list[tuple[IndexEntry, RankedItem]] = []
        for entry in live:
            distance = blend_distance(
                vector_distance(similarities.get(entry.id, 0.0)),
                lexical.get(entry.id, 1.0),
                weight,
            )
            ranked.append((entry, RankedItem(identifier=entry.id, distance=distance, score=normalize_score(distance))))
        return ranked

    def report_size(self) -> None:
        INDEX_SIZE.labels(collection=self.name).set(len(self.live()))


class SQLiteSearchIndex:
    """Embedded, file-backed hybrid index over session summaries and notes."""

    def __init__(
        self,
        db_path: Path,
        dimensions: int,
        hybrid_weight: float = 0.7,
        default_limit: int = 10,
    ) -> None:
        if not 0.0 <= hybrid_weight <= 1.0:
            raise ValidationError("hybrid_weight must be between 0 and 1")
        if default_limit < 1:
            raise ValidationError("default_limit must be at least 1")
        self.db = SQLiteDatabase(db_path)
        self.dimensions = dimensions
        self.hybrid_weight = hybrid_weight
        self.default_limit = default_limit
        self._sessions = _Collection("sessions", "session", dimensions)
        self._memories = _Collection("memories", "memory", dimensions)
        self._lock = asyncio.Lock()
        self._initialized = False
        self._closed = False

    async def init(self) -> None:
        async with self._lock:
            self._check_open()
            if self._initialized:
                return
            await asyncio.to_thread(self._load)
            self._initialized = True
            self._sessions.report_size()
            self._memories.report_size()
            logger.info(
                "Search index ready: %s sessions, %s memories",
                len(self._sessions.entries),
                len(self._memories.entries),
            )

    async def index_session(
        self, session_id: str, summary: str, embedding: Sequence[float], meta: SessionMeta
    ) -> None:
        self._check_dim(embedding)
        entry = _session_entry(session_id, summary, meta)
        async with self._lock:
            self._check_ready()
            if session_id in self._sessions.entries:
                raise StorageError(f"session already indexed: {session_id}")
            await asyncio.to_thread(self._write_session, entry, embedding, insert=True)
            self._sessions.put(entry, embedding)
            self._sessions.report_size()

    async def update_session(
        self, session_id: str, summary: str, embedding: Sequence[float], meta: SessionMeta
    ) -> None:
        self._check_dim(embedding)
        entry = _session_entry(session_id, summary, meta)
        async with self._lock:
            self._check_ready()
            if session_id not in self._sessions.entries:
                raise NotFoundError(session_id, "session")
            await asyncio.to_thread(self._write_session, entry, embedding, insert=False)
            self._sessions.put(entry, embedding)
            self._sessions.report_size()

    async def index_memory(
        self, memory_id: str, content: str, embedding: Sequence[float], meta: Note
    ) -> None:
        self._check_dim(embedding)
        entry = _memory_entry(memory_id, content, meta)
        async with self._lock:
            self._check_ready()
            if memory_id in self._memories.entries:
                raise StorageError(f"memory already indexed: {memory_id}")
            await asyncio.to_thread(self._write_memory, entry, embedding, insert=True)
            self._memories.put(entry, embedding)
            self._memories.report_size()

    async def update_memory(
        self, memory_id: str, content: str, embedding: Sequence[float], meta: Note
    ) -> None:
        self._check_dim(embedding)
        entry = _memory_entry(memory_id, content, meta)
        async with self._lock:
            self._check_ready()
            if memory_id not in self._memories.entries:
                raise NotFoundError(memory_id, "memory")
            await asyncio.to_thread(self._write_memory, entry, embedding, insert=False)
            self._memories.put(entry, embedding)
            self._memories.report_size()

    async def remove(self, item_id: str) -> None:
        """Tombstone ``item_id`` in whichever collection holds it."""
        async with self._lock:
            self._check_ready()
            await asyncio.to_thread(self._tombstone, item_id)
            found = False
            for collection in (self._sessions, self._memories):
                entry = collection.entries.get(item_id)
                if entry is not None:
                    entry.deleted = True
                    collection.report_size()
                    found = True
            if not found:
                logger.debug("remove(%s): id not present in index", item_id)

    async def search(
        self,
        query: str,
        query_embedding: Sequence[float],
        limit: int | None = None,
        type: SearchType | None = None,
    ) -> list[SearchResult]:
        self._check_ready()
        self._check_dim(query_embedding)
        if limit is None:
            limit = self.default_limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        started = time.perf_counter()
        collections = {
            None: (self._sessions, self._memories),
            "all": (self._sessions, self._memories),
            "session": (self._sessions,),
            "memory": (self._memories,),
        }.get(type)
        if collections is None:
            raise ValidationError(f"Unknown search type: {type!r}")

        ranked: list[tuple[IndexEntry, RankedItem]] = []
        for collection in collections:
            ranked.extend(collection.rank(query, query_embedding, self.hybrid_weight))
        # Tombstones are checked again after ranking in case a remove landed meanwhile.
        ranked = [(entry, item) for entry, item in ranked if not entry.deleted]
        ranked.sort(key=lambda pair: (-pair[1].score, -pair[0].updated_ts, pair[0].id))
        SEARCH_LATENCY.observe(time.perf_counter() - started)
        return [entry.to_result(item.score) for entry, item in ranked[:limit]]

    async def close(self) -> None:
        async with self._lock:
            self._check_open()
            await asyncio.to_thread(self.db.close)
            self._closed = True
            logger.debug("Search index closed")

    # Internal helpers -------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError("Search index is closed")

    def _check_ready(self) -> None:
        self._check_open()
        if not self._initialized:
            raise StorageError("Search index is not initialized; call init() first")

    def _check_dim(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimensions:
            raise ValidationError(
                f"Embedding has {len(vector)} dimensions; index expects {self.dimensions}"
            )

    def _load(self) -> None:
        self.db.ensure_schema()
        with self.db.transaction() as conn:
            row = conn.execute("SELECT value FROM index_meta WHERE key = 'dimensions'").fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO index_meta (key, value) VALUES ('dimensions', ?)",
                    [str(self.dimensions)],
                )
            elif int(row["value"]) != self.dimensions:
                raise StorageError(
                    f"Index at {self.db.db_path} was built with {row['value']}-dimensional "
                    f"embeddings; configured provider produces {self.dimensions}"
                )

        cursor = self.db.execute(
            "SELECT id, summary, vector, chunks, message_count, channel, user_id, created_at, updated_at, deleted "
            "FROM sessions"
        )
        for row in iter_rows(cursor):
            entry = IndexEntry(
                id=row["id"],
                type="session",
                text=row["summary"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                chunks=row["chunks"],
                message_count=row["message_count"],
                deleted=bool(row["deleted"]),
                channel=row["channel"],
                user_id=row["user_id"],
            )
            self._sessions.put(entry, bytes_to_vector(row["vector"]))

        cursor = self.db.execute(
            "SELECT id, title, content, vector, tags_json, created_at, updated_at, deleted FROM memories"
        )
        for row in iter_rows(cursor):
            entry = IndexEntry(
                id=row["id"],
                type="memory",
                text=row["content"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                chunks=1,
                deleted=bool(row["deleted"]),
                title=row["title"],
                tags=orjson.loads(row["tags_json"]),
            )
            self._memories.put(entry, bytes_to_vector(row["vector"]))

    def _write_session(self, entry: IndexEntry, embedding: Sequence[float], insert: bool) -> None:
        values = {
            "summary": entry.text,
            "vector": vector_to_bytes(embedding),
            "chunks": entry.chunks,
            "message_count": entry.message_count,
            "channel": entry.channel,
            "user_id": entry.user_id,
            "created_at": entry.created_at,
            "updated_at": entry.updated_at,
            "deleted": int(entry.deleted),
        }
        self._upsert_row("sessions", entry.id, values, insert)

    def _write_memory(self, entry: IndexEntry, embedding: Sequence[float], insert: bool) -> None:
        values = {
            "title": entry.title or "",
            "content": entry.text,
            "vector": vector_to_bytes(embedding),
            "tags_json": orjson.dumps(entry.tags or []).decode("utf-8"),
            "created_at": entry.created_at,
            "updated_at": entry.updated_at,
            "deleted": int(entry.deleted),
        }
        self._upsert_row("memories", entry.id, values, insert)

    def _upsert_row(self, table: str, item_id: str, values: dict[str, object], insert: bool) -> None:
        columns = list(values)
        with self.db.transaction() as conn:
            if insert:
                placeholders = ", ".join("?" for _ in range(len(columns) + 1))
                conn.execute(
                    f"INSERT INTO {table} (id, {', '.join(columns)}) VALUES ({placeholders})",
                    [item_id, *values.values()],
                )
            else:
                assignments = ", ".join(f"{column} = ?" for column in columns)
                cursor = conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id = ?",
                    [*values.values(), item_id],
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(item_id, "session" if table == "sessions" else "memory")

    def _tombstone(self, item_id: str) -> None:
        with self.db.transaction() as conn:
            for table in ("sessions", "memories"):
                conn.execute(f"UPDATE {table} SET deleted = 1 WHERE id = ?", [item_id])


def _session_entry(session_id: str, summary: str, meta: SessionMeta) -> IndexEntry:
    return IndexEntry(
        id=session_id,
        type="session",
        text=summary,
        created_at=meta.created_at,
        updated_at=meta.updated_at,
        chunks=meta.chunks,
        message_count=meta.message_count,
        deleted=meta.deleted,
        channel=meta.channel,
        user_id=meta.user_id,
    )


def _memory_entry(memory_id: str, content: str, meta: Note) -> IndexEntry:
    return IndexEntry(
        id=memory_id,
        type="memory",
        text=content,
        created_at=meta.created_at,
        updated_at=meta.updated_at,
        chunks=1,
        deleted=meta.deleted,
        title=meta.title,
        tags=list(meta.tags),
    )


__all__ = ["IndexEntry", "SQLiteSearchIndex"]
