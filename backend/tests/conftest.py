"""Test fixtures for agent memory."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from agent_memory.core.config import Settings  # noqa: E402
from agent_memory.core.errors import ProviderError  # noqa: E402
from agent_memory.memory import Memory  # noqa: E402
from agent_memory.models.dto import Message, SummarizationResult  # noqa: E402
from agent_memory.providers.embeddings import HashedEmbeddings  # noqa: E402


class FakeSummarizer:
    """Summary is every message's content joined; facts are the user messages."""

    def __init__(self) -> None:
        self.calls: list[list[Message]] = []
        self.fail = False

    async def summarize(self, messages: Sequence[Message]) -> SummarizationResult:
        self.calls.append(list(messages))
        if self.fail:
            raise ProviderError("scripted failure", "fake")
        return SummarizationResult(
            summary=" ".join(message.content for message in messages),
            key_facts=[message.content for message in messages if message.role == "user"],
        )


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings, the API singleton and AGMEM_ environment between tests."""
    monkeypatch.setenv("AGMEM_STORAGE_PATH", str(tmp_path / "api-store"))
    monkeypatch.setenv("AGMEM_CONFIG", str(tmp_path / "missing-config.yaml"))
    monkeypatch.setenv("AGMEM_EMBEDDINGS__PROVIDER", "hashed")
    monkeypatch.delenv("AGMEM_CHUNK_SIZE", raising=False)
    monkeypatch.delenv("AGMEM_HOST", raising=False)

    from agent_memory.api import dependencies as deps
    from agent_memory.core.config import get_settings

    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._MEMORY = None
    yield
    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._MEMORY = None


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(storage_path=tmp_path / "store", chunk_size=50)


@pytest.fixture
def embeddings() -> HashedEmbeddings:
    return HashedEmbeddings()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
async def memory(settings: Settings, embeddings: HashedEmbeddings, summarizer: FakeSummarizer):
    instance = await Memory.init(settings, embeddings=embeddings, summarizer=summarizer)
    yield instance
    await instance.close()


def make_messages(count: int, start: int = 0) -> list[dict[str, str]]:
    return [
        {"role": "user" if idx % 2 == 0 else "assistant", "content": f"message {idx}"}
        for idx in range(start, start + count)
    ]
