"""Search and read routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from agent_memory.api.dependencies import get_memory
from agent_memory.memory import Memory
from agent_memory.models.dto import ReadOptions, ReadResult, SearchOptions, SearchRequest, SearchResult

router = APIRouter()


@router.post("/search", response_model=list[SearchResult], summary="Hybrid search over sessions and memories")
async def run_search(request: SearchRequest, memory: Memory = Depends(get_memory)) -> list[SearchResult]:
    options = SearchOptions(limit=request.limit, type=request.type)
    return await memory.search(request.query, options)


@router.get("/items/{item_id}", response_model=ReadResult, summary="Read a session chunk or a memory")
async def read_item(
    item_id: str,
    chunk: int = Query(default=0, ge=0),
    memory: Memory = Depends(get_memory),
) -> ReadResult:
    return await memory.read(item_id, ReadOptions(chunk=chunk))


__all__ = ["router"]
