"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def isoformat(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return isoformat(utc_now())


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def later_of(current: str, previous: str | None) -> str:
    """Return ``current`` unless ``previous`` is later, keeping timestamps monotonic."""
    if previous is None:
        return current
    return previous if parse_iso(previous) > parse_iso(current) else current
