"""Pydantic models for everything that crosses the public boundary."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from agent_memory.utils.time import parse_iso

Role = Literal["user", "assistant", "system"]
ItemType = Literal["session", "memory"]
SearchType = Literal["all", "session", "memory"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Message(_CamelModel):
    role: Role
    content: str
    timestamp: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            parse_iso(value)
        except ValueError as exc:
            raise ValueError(f"timestamp must be ISO-8601: {value!r}") from exc
        if "T" not in value:
            raise ValueError(f"timestamp must include a time of day: {value!r}")
        return value


class SessionInput(_CamelModel):
    id: str = Field(min_length=1)
    channel: str | None = None
    user_id: str | None = None
    messages: list[Message]

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if value != value.strip() or any(ch in value for ch in "/\\\n\r\t") or value in {".", ".."}:
            raise ValueError("session id must be a single path-safe token")
        return value


class SearchOptions(_CamelModel):
    limit: int | None = Field(default=None, gt=0)
    type: SearchType | None = None


class ReadOptions(_CamelModel):
    chunk: int = Field(default=0, ge=0)


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            raise ValueError("tags must not be empty")
        if any(ch in tag for ch in ",\n\r"):
            raise ValueError(f"tags must not contain commas or line breaks: {tag!r}")
        cleaned.append(tag)
    return cleaned


def _check_title(value: str | None) -> str | None:
    if value is not None and ("\n" in value or "\r" in value):
        raise ValueError("title must be a single line")
    return value


class WriteRequest(_CamelModel):
    title: str
    content: str
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _validate_title(cls, value: str) -> str:
        return _check_title(value)

    @field_validator("tags")
    @classmethod
    def _validate_tags(cls, value: list[str]) -> list[str]:
        return _clean_tags(value)


class UpdateRequest(_CamelModel):
    title: str | None = None
    content: str | None = None
    tags: list[str] | None = None

    @field_validator("title")
    @classmethod
    def _validate_title(cls, value: str | None) -> str | None:
        return _check_title(value)

    @field_validator("tags")
    @classmethod
    def _validate_tags(cls, value: list[str] | None) -> list[str] | None:
        return _clean_tags(value)


class SummarizationResult(_CamelModel):
    summary: str
    key_facts: list[str] = Field(default_factory=list)


class SearchResult(_CamelModel):
    id: str
    type: ItemType
    summary: str
    score: float
    chunks: int
    timestamp: str
    title: str | None = None
    tags: list[str] | None = None


class ReadResult(_CamelModel):
    id: str
    type: ItemType
    messages: list[Message] | None = None
    content: str | None = None
    chunk_index: int
    total_chunks: int
    summary: str


class IngestResponse(_CamelModel):
    id: str
    status: Literal["created", "updated"]
    message_count: int
    chunks: int


class SearchRequest(SearchOptions):
    query: str


class WriteResponse(_CamelModel):
    id: str


class StatusResponse(_CamelModel):
    success: bool = True


__all__ = [
    "IngestResponse",
    "ItemType",
    "Message",
    "ReadOptions",
    "ReadResult",
    "Role",
    "SearchOptions",
    "SearchRequest",
    "SearchResult",
    "SearchType",
    "SessionInput",
    "StatusResponse",
    "SummarizationResult",
    "UpdateRequest",
    "WriteRequest",
    "WriteResponse",
]
