"""Tests for embedding providers."""

from __future__ import annotations

import math
from types import SimpleNamespace

import httpx
import openai
import pytest

from agent_memory.core.config import EmbeddingsSettings
from agent_memory.core.errors import ProviderError, ValidationError
from agent_memory.providers.base import EmbeddingsProvider
from agent_memory.providers.embeddings import (
    HashedEmbeddings,
    OllamaEmbeddings,
    OpenAIEmbeddings,
    create_embeddings_provider,
)


async def test_hashed_embeddings_are_deterministic_and_normalized() -> None:
    model = HashedEmbeddings()
    first, second, empty = await model.embed_batch(["hello world", "hello world", ""])
    assert isinstance(model, EmbeddingsProvider)
    assert len(first) == model.dimensions == 384
    assert first == second
    assert math.isclose(sum(value * value for value in first), 1.0, rel_tol=1e-9)
    assert not any(empty)


async def test_openai_embeddings_batch_in_index_order() -> None:
    async def create(**kwargs):
        assert kwargs["model"] == "text-embedding-3-small"
        return SimpleNamespace(
            data=[
                SimpleNamespace(index=1, embedding=[2.0] * 1536),
                SimpleNamespace(index=0, embedding=[1.0] * 1536),
            ]
        )

    client = SimpleNamespace(embeddings=SimpleNamespace(create=create))
    model = OpenAIEmbeddings(api_key="test", client=client)
    vectors = await model.embed_batch(["a", "b"])
    assert model.dimensions == 1536
    assert [vector[0] for vector in vectors] == [1.0, 2.0]
    assert await model.embed_batch([]) == []


async def test_openai_embeddings_wrap_errors_and_bad_widths() -> None:
    async def failing(**kwargs):
        raise openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/embeddings"))

    async def narrow(**kwargs):
        return SimpleNamespace(data=[SimpleNamespace(index=0, embedding=[1.0, 2.0])])

    for create in (failing, narrow):
        client = SimpleNamespace(embeddings=SimpleNamespace(create=create))
        with pytest.raises(ProviderError):
            await OpenAIEmbeddings(api_key="test", client=client).embed("text")


def _ollama(handler) -> OllamaEmbeddings:
    client = httpx.AsyncClient(base_url="http://ollama.test", transport=httpx.MockTransport(handler))
    return OllamaEmbeddings(base_url="http://ollama.test", client=client)


async def test_ollama_embeddings_posts_prompt() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, request.read()))
        return httpx.Response(200, json={"embedding": [0.5] * 768})

    model = _ollama(handler)
    vector = await model.embed("hello")
    await model.aclose()

    assert len(vector) == model.dimensions == 768
    assert seen[0][0] == "/api/embeddings"
    assert b'"prompt"' in seen[0][1] and b'"nomic-embed-text"' in seen[0][1]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, json={"embedding": [0.1, 0.2]}),
    ],
)
async def test_ollama_failures_become_provider_errors(response: httpx.Response) -> None:
    model = _ollama(lambda request: response)
    with pytest.raises(ProviderError) as excinfo:
        await model.embed("hello")
    await model.aclose()
    assert excinfo.value.provider == "ollama"


def test_factory(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    assert isinstance(create_embeddings_provider(EmbeddingsSettings()), HashedEmbeddings)
    assert isinstance(
        create_embeddings_provider(EmbeddingsSettings(provider="ollama", base_url="http://localhost:11434")),
        OllamaEmbeddings,
    )
    with pytest.raises(ValidationError):
        create_embeddings_provider(EmbeddingsSettings(provider="openai"))
    with pytest.raises(ValidationError):
        create_embeddings_provider(EmbeddingsSettings.model_construct(provider="bogus"))

    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    provider = create_embeddings_provider(EmbeddingsSettings(provider="openai", model="text-embedding-3-large"))
    assert provider.dimensions == 3072
