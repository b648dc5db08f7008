"""Error hierarchy for agent memory.

Every failure surfaced to callers is one of four kinds: a missing id, malformed
input, a storage/index I/O failure, or an embedding/summarization provider
failure. All of them derive from :class:`AgentMemoryError` so callers can catch the
whole family at once.
"""

from __future__ import annotations

from typing import Any, Literal

EntityType = Literal["session", "memory", "item"]


class AgentMemoryError(Exception):
    """Base class for all agent memory errors."""

    code = "MEMORY_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": self.message}


class NotFoundError(AgentMemoryError):
    """Raised when a session or memory id is absent where it must exist."""

    code = "NOT_FOUND"

    def __init__(self, id: str, entity_type: EntityType) -> None:
        super().__init__(f"{entity_type} not found: {id}")
        self.id = id
        self.entity_type = entity_type


class ValidationError(AgentMemoryError):
    """Raised when input does not match the required shape or ranges."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Any = None) -> None:
        super().__init__(message)
        self.errors = errors

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class StorageError(AgentMemoryError):
    """Raised when a file system or index operation fails."""

    code = "STORAGE_ERROR"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.cause = cause


class ProviderError(AgentMemoryError):
    """Raised when an embeddings or summarizer call fails."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str, provider: str, cause: BaseException | None = None) -> None:
        detail = f"[{provider}] {message}"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)
        self.provider = provider
        self.cause = cause


__all__ = [
    "AgentMemoryError",
    "NotFoundError",
    "ValidationError",
    "StorageError",
    "ProviderError",
]
