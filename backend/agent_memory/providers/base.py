"""Provider contracts for embeddings and summarization backends."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from agent_memory.models.dto import Message, SummarizationResult


@runtime_checkable
class EmbeddingsProvider(Protocol):
    """Turns text into fixed-width vectors.

    ``dimensions`` must be known before the first call because the search
    index records it when the database is created.
    """

    @property
    def dimensions(self) -> int:
        ...

    async def embed(self, text: str) -> list[float]:
        ...


@runtime_checkable
class BatchEmbeddingsProvider(EmbeddingsProvider, Protocol):
    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        ...


@runtime_checkable
class SummarizerProvider(Protocol):
    """Produces a short summary and key facts for a conversation."""

    async def summarize(self, messages: Sequence[Message]) -> SummarizationResult:
        ...


__all__ = ["BatchEmbeddingsProvider", "EmbeddingsProvider", "SummarizerProvider"]
