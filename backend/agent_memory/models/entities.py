"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(slots=True)
class SessionMeta:
    id: str
    summary: str
    key_facts: list[str]
    chunks: int
    message_count: int
    created_at: str
    updated_at: str
    channel: str | None = None
    user_id: str | None = None
    deleted: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "summary": self.summary,
            "keyFacts": list(self.key_facts),
            "chunks": self.chunks,
            "messageCount": self.message_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "deleted": self.deleted,
        }
        if self.channel is not None:
            payload["channel"] = self.channel
        if self.user_id is not None:
            payload["userId"] = self.user_id
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionMeta":
        """Build from the on-disk mapping; raises KeyError/TypeError when malformed."""
        key_facts = data["keyFacts"]
        if not isinstance(key_facts, list):
            raise TypeError("keyFacts must be a list")
        return cls(
            id=str(data["id"]),
            summary=str(data["summary"]),
            key_facts=[str(fact) for fact in key_facts],
            chunks=int(data["chunks"]),
            message_count=int(data["messageCount"]),
            created_at=str(data["createdAt"]),
            updated_at=str(data["updatedAt"]),
            channel=data.get("channel"),
            user_id=data.get("userId"),
            deleted=bool(data.get("deleted", False)),
        )


@dataclass(slots=True)
class Note:
    """An agent-written memory stored as a markdown file."""

    id: str
    title: str
    content: str
    tags: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    deleted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "deleted": self.deleted,
        }
