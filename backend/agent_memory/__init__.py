"""Persistent, searchable memory for AI agents."""

from agent_memory.core.errors import (
    AgentMemoryError,
    NotFoundError,
    ProviderError,
    StorageError,
    ValidationError,
)
from agent_memory.memory import Memory

__version__ = "0.1.0"

__all__ = [
    "Memory",
    "AgentMemoryError",
    "NotFoundError",
    "ProviderError",
    "StorageError",
    "ValidationError",
]
