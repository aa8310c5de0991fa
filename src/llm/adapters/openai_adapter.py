# src/llm/adapters/openai_adapter.py — v2
"""OpenAI GPT adapter implementing BaseLLMClient.

Uses the official openai SDK. Streaming requests usage in the final
chunk (``stream_options.include_usage``).
"""

from __future__ import annotations

import time
from typing import Any

from actionextractor.core.cancellation import AbortedError, AbortSignal
from actionextractor.llm.base_client import BaseLLMClient, ChunkCallback
from actionextractor.llm.models import LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT adapter."""

    def __init__(self, model: str = "gpt-4o", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key

    def _new_client(self):
        import openai

        return openai.AsyncOpenAI(api_key=self._api_key)

    def _build_kwargs(
        self,
        messages: list[Message],
        system: str | None,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})
        return {
            "model": self._model,
            "messages": oai_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        client = self._new_client()
        kwargs = self._build_kwargs(messages, system, max_tokens, temperature)

        t0 = time.monotonic()
        resp = await client.chat.completions.create(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    async def stream(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        on_chunk: ChunkCallback | None = None,
        signal: AbortSignal | None = None,
    ) -> LLMResponse:
        client = self._new_client()
        kwargs = self._build_kwargs(messages, system, max_tokens, temperature)
        kwargs["stream"] = True
        kwargs["stream_options"] = {"include_usage": True}

        parts: list[str] = []
        usage = None
        t0 = time.monotonic()
        stream = await client.chat.completions.create(**kwargs)
        try:
            async for event in stream:
                if signal is not None and signal.aborted:
                    raise AbortedError(signal.reason)
                if getattr(event, "usage", None):
                    usage = event.usage
                if not event.choices:
                    continue
                delta = event.choices[0].delta.content
                if delta:
                    parts.append(delta)
                    if on_chunk is not None:
                        on_chunk(delta)
        finally:
            await stream.close()
        latency = int((time.monotonic() - t0) * 1000)

        return LLMResponse(
            content="".join(parts),
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
