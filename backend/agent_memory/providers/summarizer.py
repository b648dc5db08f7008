"""Conversation summarizers backed by hosted LLM APIs."""

from __future__ import annotations

import os
import re
from typing import Sequence

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from agent_memory.core.config import (
    DEFAULT_ANTHROPIC_SUMMARIZER_MODEL,
    DEFAULT_SUMMARIZER_MODEL,
    SummarizerSettings,
)
from agent_memory.core.errors import ProviderError, ValidationError
from agent_memory.core.logging import get_logger
from agent_memory.models.dto import Message, SummarizationResult
from agent_memory.providers.base import SummarizerProvider

logger = get_logger(__name__)

ANTHROPIC_MAX_TOKENS = 500

SUMMARIZATION_SYSTEM_PROMPT = "You are a helpful assistant that summarizes conversations concisely."

SUMMARIZATION_USER_PROMPT = """Summarize this conversation in 2-4 sentences.
Focus on:
- Key topics discussed
- Important decisions or preferences expressed
- Action items or outcomes

Then list 3-5 key facts as bullet points.

Conversation:
{messages}

Respond in this exact format:
SUMMARY:
[Your summary here]

KEY FACTS:
- [Fact 1]
- [Fact 2]
- [Fact 3]"""

_SUMMARY_RE = re.compile(r"SUMMARY:\s*\n(.*?)(?=\n\s*KEY FACTS:|\Z)", re.IGNORECASE | re.DOTALL)
_FACTS_RE = re.compile(r"KEY FACTS:\s*\n(.*)\Z", re.IGNORECASE | re.DOTALL)
_BULLET_RE = re.compile(r"^-\s*")


def format_messages_for_prompt(messages: Sequence[Message]) -> str:
    """One ``role: content`` line per message."""
    return "\n".join(f"{message.role}: {message.content}" for message in messages)


def build_prompt(messages: Sequence[Message]) -> str:
    return SUMMARIZATION_USER_PROMPT.replace("{messages}", format_messages_for_prompt(messages))


def parse_summarization_response(response: str) -> SummarizationResult:
    """Split an LLM reply into summary and key facts.

    Without a ``SUMMARY:`` section the whole reply is the summary; without a
    ``KEY FACTS:`` section there are no facts.
    """
    summary_match = _SUMMARY_RE.search(response)
    facts_match = _FACTS_RE.search(response)
    summary = summary_match.group(1).strip() if summary_match else response.strip()
    facts_text = facts_match.group(1) if facts_match else ""
    key_facts = [
        fact
        for fact in (_BULLET_RE.sub("", line).strip() for line in facts_text.split("\n"))
        if fact
    ]
    return SummarizationResult(summary=summary, key_facts=key_facts)


class OpenAISummarizer:
    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model or DEFAULT_SUMMARIZER_MODEL
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def summarize(self, messages: Sequence[Message]) -> SummarizationResult:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SUMMARIZATION_SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(messages)},
                ],
            )
        except openai.OpenAIError as exc:
            logger.error("OpenAI summarization failed: %s", exc)
            raise ProviderError("Summarization request failed", self.provider_name, exc) from exc
        if not response.choices:
            raise ProviderError("Summarization returned no choices", self.provider_name)
        return parse_summarization_response(response.choices[0].message.content or "")

    async def aclose(self) -> None:
        await self._client.close()


class AnthropicSummarizer:
    provider_name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        timeout: float = 60.0,
        client: AsyncAnthropic | None = None,
    ) -> None:
        self.model = model or DEFAULT_ANTHROPIC_SUMMARIZER_MODEL
        self._client = client or AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def summarize(self, messages: Sequence[Message]) -> SummarizationResult:
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=ANTHROPIC_MAX_TOKENS,
                messages=[{"role": "user", "content": build_prompt(messages)}],
            )
        except anthropic.AnthropicError as exc:
            logger.error("Anthropic summarization failed: %s", exc)
            raise ProviderError("Summarization request failed", self.provider_name, exc) from exc
        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        return parse_summarization_response(text)

    async def aclose(self) -> None:
        await self._client.close()


def create_summarizer_provider(settings: SummarizerSettings) -> SummarizerProvider:
    """Build the summarizer named by ``settings.provider``."""
    provider = settings.provider
    if provider == "openai":
        api_key = settings.api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValidationError("OpenAI summarizer requires an api_key (or OPENAI_API_KEY)")
        return OpenAISummarizer(api_key=api_key, model=settings.model, timeout=settings.timeout)
    if provider == "anthropic":
        api_key = settings.api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValidationError("Anthropic summarizer requires an api_key (or ANTHROPIC_API_KEY)")
        return AnthropicSummarizer(api_key=api_key, model=settings.model, timeout=settings.timeout)
    raise ValidationError(f"Unknown summarizer provider: {provider}")


__all__ = [
    "ANTHROPIC_MAX_TOKENS",
    "AnthropicSummarizer",
    "OpenAISummarizer",
    "SUMMARIZATION_SYSTEM_PROMPT",
    "SUMMARIZATION_USER_PROMPT",
    "build_prompt",
    "create_summarizer_provider",
    "format_messages_for_prompt",
    "parse_summarization_response",
]
