"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, Mapping

import pydantic
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from agent_memory.core.errors import ValidationError

ENV_PREFIX = "AGMEM_"
ENV_NESTED_DELIMITER = "__"
DEFAULT_CONFIG_PATH = Path("~/.config/agent-memory/config.yaml")
DEFAULT_STORAGE_PATH = "~/.agent-memory"
DEFAULT_CHUNK_SIZE = 50

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_OLLAMA_EMBEDDING_MODEL = "nomic-embed-text"
DEFAULT_HASHED_EMBEDDING_MODEL = "hashed"
DEFAULT_SUMMARIZER_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_SUMMARIZER_MODEL = "claude-3-haiku-20240307"

EMBEDDING_DIMENSIONS: Mapping[str, int] = MappingProxyType(
    {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
        "nomic-embed-text": 768,
        "hashed": 384,
    }
)

# camelCase keys accepted in YAML files for compatibility with JS-style configs.
_KEY_ALIASES: Mapping[str, str] = {
    "storagePath": "storage_path",
    "chunkSize": "chunk_size",
    "apiKey": "api_key",
    "baseUrl": "base_url",
    "hybridWeight": "hybrid_weight",
    "defaultLimit": "default_limit",
    "logLevel": "log_level",
    "logJson": "log_json",
}


def resolve_path(path: str | Path) -> Path:
    """Expand ``~`` to the user's home directory."""
    return Path(path).expanduser()


def embedding_dimensions(model: str, fallback: int) -> int:
    """Look up the vector width for an embedding model."""
    return EMBEDDING_DIMENSIONS.get(model, fallback)


class EmbeddingsSettings(BaseModel):
    provider: Literal["openai", "ollama", "hashed"] = "hashed"
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    timeout: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def _check_provider_requirements(self) -> "EmbeddingsSettings":
        if self.provider == "ollama" and not self.base_url:
            raise ValueError("base_url required for ollama provider")
        return self


class SummarizerSettings(BaseModel):
    provider: Literal["openai", "anthropic"] = "openai"
    api_key: str | None = None
    model: str | None = None
    timeout: float = Field(default=60.0, gt=0)


class SearchSettings(BaseModel):
    hybrid_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    default_limit: int = Field(default=10, gt=0)


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    storage_path: Path = Field(default_factory=lambda: resolve_path(DEFAULT_STORAGE_PATH))
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    embeddings: EmbeddingsSettings = Field(default_factory=EmbeddingsSettings)
    summarizer: SummarizerSettings = Field(default_factory=SummarizerSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("storage_path", mode="before")
    @classmethod
    def _expand_storage_path(cls, value: Any) -> Path:
        if isinstance(value, (str, Path)):
            return resolve_path(value)
        raise TypeError("storage_path must be a path or string")

    @property
    def sessions_dir(self) -> Path:
        return self.storage_path / "sessions"

    @property
    def memories_dir(self) -> Path:
        return self.storage_path / "memories"

    @property
    def index_path(self) -> Path:
        return self.storage_path / "index.db"

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            _deep_merge(data, _normalize_keys(raw))
        _deep_merge(data, _load_env_overrides())
        return validate_settings(data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def validate_settings(raw: Mapping[str, Any] | Settings) -> Settings:
    """Validate raw configuration, raising :class:`ValidationError` on failure."""
    if isinstance(raw, Settings):
        return raw
    try:
        return Settings.model_validate(dict(raw))
    except pydantic.ValidationError as exc:
        raise ValidationError("Invalid configuration", exc.errors(include_url=False)) from exc


def _normalize_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Rename camelCase aliases to Settings field names, recursively."""
    normalized: dict[str, Any] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, key)
        if isinstance(value, Mapping):
            value = _normalize_keys(value)
        normalized[name] = value
    return normalized


def _deep_merge(target: dict[str, Any], overrides: Mapping[str, Any]) -> None:
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        elif isinstance(value, Mapping):
            target[key] = dict(value)
        else:
            target[key] = value


def _load_env_overrides() -> dict[str, Any]:
    """Map AGMEM_ environment variables into (possibly nested) Settings fields.

    ``AGMEM_CHUNK_SIZE=20`` sets ``chunk_size``; ``AGMEM_SEARCH__DEFAULT_LIMIT=5``
    sets ``search.default_limit``.
    """
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == f"{ENV_PREFIX}CONFIG":
            continue
        path = key[len(ENV_PREFIX) :].lower().split(ENV_NESTED_DELIMITER)
        if path[0] not in Settings.model_fields:
            continue
        cursor = overrides
        for part in path[:-1]:
            cursor = cursor.setdefault(part, {})
        cursor[path[-1]] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = [
    "DEFAULT_ANTHROPIC_SUMMARIZER_MODEL",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_EMBEDDING_MODEL",
    "DEFAULT_HASHED_EMBEDDING_MODEL",
    "DEFAULT_OLLAMA_EMBEDDING_MODEL",
    "DEFAULT_SUMMARIZER_MODEL",
    "EMBEDDING_DIMENSIONS",
    "EmbeddingsSettings",
    "SearchSettings",
    "Settings",
    "SummarizerSettings",
    "embedding_dimensions",
    "get_settings",
    "resolve_path",
    "validate_settings",
]
