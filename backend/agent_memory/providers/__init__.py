"""Embedding and summarization backends."""

from .base import BatchEmbeddingsProvider, EmbeddingsProvider, SummarizerProvider
from .embeddings import HashedEmbeddings, OllamaEmbeddings, OpenAIEmbeddings, create_embeddings_provider
from .summarizer import (
    AnthropicSummarizer,
    OpenAISummarizer,
    create_summarizer_provider,
    format_messages_for_prompt,
    parse_summarization_response,
)

__all__ = [
    "AnthropicSummarizer",
    "BatchEmbeddingsProvider",
    "EmbeddingsProvider",
    "HashedEmbeddings",
    "OllamaEmbeddings",
    "OpenAIEmbeddings",
    "OpenAISummarizer",
    "SummarizerProvider",
    "create_embeddings_provider",
    "create_summarizer_provider",
    "format_messages_for_prompt",
    "parse_summarization_response",
]
