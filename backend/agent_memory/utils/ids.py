"""ID helpers."""

from __future__ import annotations

import uuid

MEMORY_ID_PREFIX = "memory"


def new_id(prefix: str | None = None, length: int | None = None, sep: str = "_") -> str:
    """Generate a random UUID4 hex string with optional prefix and truncation."""
    base = uuid.uuid4().hex
    if length is not None:
        base = base[:length]
    return f"{prefix}{sep}{base}" if prefix else base


def new_memory_id() -> str:
    """Generate a note id such as ``memory-1f2e3d4c``."""
    return new_id(MEMORY_ID_PREFIX, length=8, sep="-")
