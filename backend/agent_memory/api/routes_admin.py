"""Administrative routes: deletion and metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agent_memory.api.dependencies import get_memory
from agent_memory.core.metrics import metrics_response
from agent_memory.memory import Memory
from agent_memory.models.dto import StatusResponse

router = APIRouter()


@router.delete("/items/{item_id}", response_model=StatusResponse, summary="Soft-delete a session or memory")
async def delete_item(item_id: str, memory: Memory = Depends(get_memory)) -> StatusResponse:
    await memory.delete(item_id)
    return StatusResponse()


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
