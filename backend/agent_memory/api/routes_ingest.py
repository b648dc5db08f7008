"""Session ingest routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agent_memory.api.dependencies import get_memory
from agent_memory.memory import Memory
from agent_memory.models.dto import IngestResponse, SessionInput

router = APIRouter()


@router.post("/sessions", response_model=IngestResponse, summary="Ingest (append to) a session")
async def ingest_session(request: SessionInput, memory: Memory = Depends(get_memory)) -> IngestResponse:
    return await memory.ingest_session(request)


__all__ = ["router"]
