"""Embedding providers."""

from __future__ import annotations

import hashlib
import math
import os
from typing import Sequence

import httpx
import openai
from openai import AsyncOpenAI

from agent_memory.core.config import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_HASHED_EMBEDDING_MODEL,
    DEFAULT_OLLAMA_EMBEDDING_MODEL,
    EmbeddingsSettings,
    embedding_dimensions,
)
from agent_memory.core.errors import ProviderError, ValidationError
from agent_memory.core.logging import get_logger
from agent_memory.providers.base import EmbeddingsProvider
from agent_memory.utils.text import tokenize

logger = get_logger(__name__)

OPENAI_FALLBACK_DIMENSIONS = 1536
OLLAMA_FALLBACK_DIMENSIONS = 768
HASHED_FALLBACK_DIMENSIONS = 384


class HashedEmbeddings:
    """Deterministic hashed bag-of-words embeddings.

    Each token is hashed into one of ``dimensions`` slots and the resulting
    count vector is L2-normalised. Needs no network and no model download, so
    it serves offline setups and tests.
    """

    def __init__(self, model: str = DEFAULT_HASHED_EMBEDDING_MODEL, dimensions: int | None = None) -> None:
        self.model = model
        self._dimensions = dimensions or embedding_dimensions(model, HASHED_FALLBACK_DIMENSIONS)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        return self.encode(text)

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [self.encode(text) for text in texts]

    def encode(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for token in tokenize(text):
            vector[_hash_token(token, self._dimensions)] += 1.0
        _normalize(vector)
        return vector


class OpenAIEmbeddings:
    """Embeddings from the OpenAI ``embeddings.create`` endpoint."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model or DEFAULT_EMBEDDING_MODEL
        self._dimensions = embedding_dimensions(self.model, OPENAI_FALLBACK_DIMENSIONS)
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await self._client.embeddings.create(model=self.model, input=list(texts))
        except openai.OpenAIError as exc:
            logger.error("OpenAI embeddings request failed: %s", exc)
            raise ProviderError("Embedding request failed", self.provider_name, exc) from exc
        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise ProviderError(
                f"Expected {len(texts)} embeddings, received {len(data)}", self.provider_name
            )
        return [_check_width(list(item.embedding), self._dimensions, self.provider_name) for item in data]

    async def aclose(self) -> None:
        await self._client.close()


class OllamaEmbeddings:
    """Embeddings from a local Ollama server (``POST /api/embeddings``)."""

    provider_name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model or DEFAULT_OLLAMA_EMBEDDING_MODEL
        self._dimensions = embedding_dimensions(self.model, OLLAMA_FALLBACK_DIMENSIONS)
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        try:
            response = await self._client.post(
                "/api/embeddings", json={"model": self.model, "prompt": text}
            )
            response.raise_for_status()
            vector = response.json()["embedding"]
        except httpx.HTTPError as exc:
            logger.error("Ollama embeddings request to %s failed: %s", self.base_url, exc)
            raise ProviderError("Embedding request failed", self.provider_name, exc) from exc
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Ollama returned an unexpected payload: %s", exc)
            raise ProviderError("Malformed embedding response", self.provider_name, exc) from exc
        return _check_width([float(value) for value in vector], self._dimensions, self.provider_name)

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [await self.embed(text) for text in texts]

    async def aclose(self) -> None:
        await self._client.aclose()


def create_embeddings_provider(settings: EmbeddingsSettings) -> EmbeddingsProvider:
    """Build the embeddings backend named by ``settings.provider``."""
    provider = settings.provider
    if provider == "openai":
        api_key = settings.api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValidationError("OpenAI embeddings require an api_key (or OPENAI_API_KEY)")
        return OpenAIEmbeddings(
            api_key=api_key,
            model=settings.model,
            base_url=settings.base_url,
            timeout=settings.timeout,
        )
    if provider == "ollama":
        if not settings.base_url:
            raise ValidationError("Ollama embeddings require a base_url")
        return OllamaEmbeddings(base_url=settings.base_url, model=settings.model, timeout=settings.timeout)
    if provider == "hashed":
        return HashedEmbeddings(model=settings.model or DEFAULT_HASHED_EMBEDDING_MODEL)
    raise ValidationError(f"Unknown embeddings provider: {provider}")


def _check_width(vector: list[float], expected: int, provider: str) -> list[float]:
    if len(vector) != expected:
        raise ProviderError(f"Expected {expected}-dimensional embedding, received {len(vector)}", provider)
    return vector


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "HashedEmbeddings",
    "OllamaEmbeddings",
    "OpenAIEmbeddings",
    "create_embeddings_provider",
]
