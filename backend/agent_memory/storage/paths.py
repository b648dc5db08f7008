"""Mapping of record ids to files under a storage directory."""

from __future__ import annotations

import os
from pathlib import Path

from agent_memory.core.errors import ValidationError

_FORBIDDEN = ("/", "\\", "\x00", "\n", "\r")


def check_id(record_id: str) -> str:
    """Reject ids that cannot be used verbatim as a file name."""
    if not record_id or record_id in {".", ".."} or any(ch in record_id for ch in _FORBIDDEN):
        raise ValidationError(f"Invalid id: {record_id!r}")
    return record_id


def file_for(base_path: Path, record_id: str, suffix: str) -> Path:
    return base_path / f"{check_id(record_id)}{suffix}"


def write_atomic(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` so readers never observe a partial file."""
    tmp_path = path.with_name(f".{path.name}.tmp")
    with tmp_path.open("wb") as fh:
        fh.write(data)
        fh.flush()
        os.fsync(fh.fileno())
    os.replace(tmp_path, path)


__all__ = ["check_id", "file_for", "write_atomic"]
