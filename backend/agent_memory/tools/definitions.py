"""Framework-agnostic tool definitions for agent integrations.

Each tool pairs a pydantic parameter model with an async ``execute`` bound to
a :class:`~agent_memory.memory.Memory`. ``to_json_schema`` renders a tool in
the ``{name, description, parameters}`` shape most agent frameworks accept.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

import pydantic
from pydantic import BaseModel, Field

from agent_memory.core.errors import ValidationError
from agent_memory.models.dto import SearchType

if TYPE_CHECKING:
    from agent_memory.memory import Memory


class MemorySearchParams(BaseModel):
    query: str = Field(description="Search query")
    limit: int | None = Field(default=None, gt=0, description="Max results (default: 10)")
    type: SearchType | None = Field(default=None, description="Filter by type")


class MemoryReadParams(BaseModel):
    id: str = Field(description="Memory or session ID")
    chunk: int = Field(default=0, ge=0, description="Chunk index (0-based, default: 0)")


class MemoryWriteParams(BaseModel):
    title: str = Field(description="Memory title")
    content: str = Field(description="Memory content")
    tags: list[str] = Field(default_factory=list, description="Tags for categorization")


class MemoryUpdateParams(BaseModel):
    id: str = Field(description="Memory ID")
    content: str | None = Field(default=None, description="New content")
    title: str | None = Field(default=None, description="New title")
    tags: list[str] | None = Field(default=None, description="New tags")


class MemoryDeleteParams(BaseModel):
    id: str = Field(description="Memory ID")


@dataclass(slots=True)
class ToolDefinition:
    name: str
    description: str
    parameters: type[BaseModel]
    execute: Callable[[BaseModel], Awaitable[Any]]

    async def run(self, arguments: Mapping[str, Any]) -> Any:
        """Validate raw arguments (e.g. from an LLM tool call) and execute."""
        try:
            params = self.parameters.model_validate(dict(arguments))
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid arguments for {self.name}", exc.errors(include_url=False)) from exc
        return await self.execute(params)


def memory_tools(memory: "Memory") -> list[ToolDefinition]:
    """Bind the memory tools to ``memory``."""

    async def search(params: MemorySearchParams) -> list[dict[str, Any]]:
        results = await memory.search(params.query, {"limit": params.limit, "type": params.type})
        return [result.model_dump(by_alias=True, exclude_none=True) for result in results]

    async def read(params: MemoryReadParams) -> dict[str, Any]:
        result = await memory.read(params.id, {"chunk": params.chunk})
        return result.model_dump(by_alias=True, exclude_none=True)

    async def write(params: MemoryWriteParams) -> dict[str, Any]:
        memory_id = await memory.write({"title": params.title, "content": params.content, "tags": params.tags})
        return {"id": memory_id}

    async def update(params: MemoryUpdateParams) -> dict[str, Any]:
        await memory.update(params.id, params.model_dump(exclude={"id"}, exclude_none=True))
        return {"success": True}

    async def delete(params: MemoryDeleteParams) -> dict[str, Any]:
        await memory.delete(params.id)
        return {"success": True}

    return [
        ToolDefinition(
            name="memory_search",
            description="Search through stored memories and conversation sessions",
            parameters=MemorySearchParams,
            execute=search,
        ),
        ToolDefinition(
            name="memory_read",
            description="Read the content of a memory or session by chunk index",
            parameters=MemoryReadParams,
            execute=read,
        ),
        ToolDefinition(
            name="memory_write",
            description="Write a new persistent memory",
            parameters=MemoryWriteParams,
            execute=write,
        ),
        ToolDefinition(
            name="memory_update",
            description="Update an existing memory",
            parameters=MemoryUpdateParams,
            execute=update,
        ),
        ToolDefinition(
            name="memory_delete",
            description="Delete a memory (soft delete)",
            parameters=MemoryDeleteParams,
            execute=delete,
        ),
    ]


def to_json_schema(tool: ToolDefinition) -> dict[str, Any]:
    return {
        "name": tool.name,
        "description": tool.description,
        "parameters": tool.parameters.model_json_schema(),
    }


__all__ = [
    "MemoryDeleteParams",
    "MemoryReadParams",
    "MemorySearchParams",
    "MemoryUpdateParams",
    "MemoryWriteParams",
    "ToolDefinition",
    "memory_tools",
    "to_json_schema",
]
