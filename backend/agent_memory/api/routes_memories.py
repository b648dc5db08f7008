"""Routes for agent-written memories."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from agent_memory.api.dependencies import get_memory
from agent_memory.memory import Memory
from agent_memory.models.dto import StatusResponse, UpdateRequest, WriteRequest, WriteResponse

router = APIRouter()


@router.post(
    "/memories",
    response_model=WriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Write a new memory",
)
async def write_memory(request: WriteRequest, memory: Memory = Depends(get_memory)) -> WriteResponse:
    memory_id = await memory.write(request)
    return WriteResponse(id=memory_id)


@router.patch("/memories/{memory_id}", response_model=StatusResponse, summary="Update an existing memory")
async def update_memory(
    memory_id: str,
    request: UpdateRequest,
    memory: Memory = Depends(get_memory),
) -> StatusResponse:
    await memory.update(memory_id, request)
    return StatusResponse()


__all__ = ["router"]
