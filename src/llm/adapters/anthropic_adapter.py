# src/llm/adapters/anthropic_adapter.py — v3
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK. Streaming goes through the
``messages.stream`` helper; leaving its context manager closes the HTTP
response, which is how an abort stops the provider stream.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from actionextractor.core.cancellation import AbortedError, AbortSignal
from actionextractor.llm.base_client import BaseLLMClient, ChunkCallback
from actionextractor.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-6",
        api_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or "")
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        kwargs = self._build_kwargs(messages, system, max_tokens, temperature)

        start = time.monotonic()
        response = await self._client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        return self._to_response(response, self._extract_content(response), latency_ms)

    async def stream(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        on_chunk: ChunkCallback | None = None,
        signal: AbortSignal | None = None,
    ) -> LLMResponse:
        """Streaming completion; text deltas are forwarded to ``on_chunk``."""
        kwargs = self._build_kwargs(messages, system, max_tokens, temperature)
        parts: list[str] = []

        start = time.monotonic()
        async with self._client.messages.stream(**kwargs) as stream:
            async for text in stream.text_stream:
                if signal is not None and signal.aborted:
                    logger.debug("Anthropic stream aborted after %d chunks", len(parts))
                    raise AbortedError(signal.reason)
                if not text:
                    continue
                parts.append(text)
                if on_chunk is not None:
                    on_chunk(text)
            final = await stream.get_final_message()
        latency_ms = int((time.monotonic() - start) * 1000)

        return self._to_response(final, "".join(parts), latency_ms)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model

    # --- Internal helpers ---

    def _build_kwargs(
        self,
        messages: list[Message],
        system: str | None,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system:
            kwargs["system"] = system
        return kwargs

    @staticmethod
    def _to_response(response: Any, content: str, latency_ms: int) -> LLMResponse:
        usage = response.usage
        return LLMResponse(
            content=content,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cache_read_tokens=getattr(usage, "cache_read_input_tokens", 0) or 0,
            cache_write_tokens=getattr(usage, "cache_creation_input_tokens", 0) or 0,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @staticmethod
    def _extract_content(response: Any) -> str:
        """Concatenate text blocks of an Anthropic response."""
        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
