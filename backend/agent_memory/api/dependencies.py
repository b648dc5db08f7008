"""Shared FastAPI dependencies."""

from __future__ import annotations

import asyncio
from functools import lru_cache

from agent_memory.core.config import Settings, get_settings
from agent_memory.memory import Memory

_MEMORY: Memory | None = None
_MEMORY_LOCK = asyncio.Lock()


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


async def get_memory() -> Memory:
    """Create the process-wide Memory on first use."""
    global _MEMORY
    if _MEMORY is None:
        async with _MEMORY_LOCK:
            if _MEMORY is None:
                _MEMORY = await Memory.init(get_app_settings())
    return _MEMORY


async def close_memory() -> None:
    global _MEMORY
    if _MEMORY is not None:
        await _MEMORY.close()
        _MEMORY = None


__all__ = ["close_memory", "get_app_settings", "get_memory"]
