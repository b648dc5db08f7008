"""Search index contract."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from agent_memory.models.dto import SearchResult, SearchType
from agent_memory.models.entities import Note, SessionMeta


@runtime_checkable
class SearchIndex(Protocol):
    """Two collections (sessions, memories) searchable by keyword and vector.

    Implementations must exclude tombstoned entries at query time and report
    scores as ``normalize_score(distance)`` so both collections share one scale.
    """

    async def init(self) -> None:
        ...

    async def index_session(
        self, session_id: str, summary: str, embedding: Sequence[float], meta: SessionMeta
    ) -> None:
        ...

    async def index_memory(
        self, memory_id: str, content: str, embedding: Sequence[float], meta: Note
    ) -> None:
        ...

    async def update_session(
        self, session_id: str, summary: str, embedding: Sequence[float], meta: SessionMeta
    ) -> None:
        ...

    async def update_memory(
        self, memory_id: str, content: str, embedding: Sequence[float], meta: Note
    ) -> None:
        ...

    async def remove(self, item_id: str) -> None:
        ...

    async def search(
        self,
        query: str,
        query_embedding: Sequence[float],
        limit: int | None = None,
        type: SearchType | None = None,
    ) -> list[SearchResult]:
        ...

    async def close(self) -> None:
        ...


__all__ = ["SearchIndex"]
