# src/llm/adapters/google_adapter.py — v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses google-generativeai SDK.
"""

from __future__ import annotations

import time
from typing import Any

from actionextractor.core.cancellation import AbortedError, AbortSignal
from actionextractor.llm.base_client import BaseLLMClient, ChunkCallback
from actionextractor.llm.models import LLMResponse, Message


def _chunk_text(chunk: Any) -> str:
    # .text raises when a chunk carries no text part (e.g. a safety stop)
    try:
        return chunk.text or ""
    except ValueError:
        return ""


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(self, model: str = "gemini-2.0-flash", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key

    def _prepare(
        self,
        messages: list[Message],
        system: str | None,
        max_tokens: int,
        temperature: float,
    ) -> tuple[Any, list[dict[str, Any]], dict[str, Any]]:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model, system_instruction=system)
        gen_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        contents = []
        for m in messages:
            role = "model" if m.role == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": m.content}]})
        return model, contents, gen_config

    def _to_response(self, resp: Any, content: str, latency: int) -> LLMResponse:
        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=content,
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            model=self._model,
            provider="google",
            latency_ms=latency,
            raw_response=resp,
        )

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        model, contents, gen_config = self._prepare(messages, system, max_tokens, temperature)

        t0 = time.monotonic()
        resp = await model.generate_content_async(contents, generation_config=gen_config)
        latency = int((time.monotonic() - t0) * 1000)

        return self._to_response(resp, _chunk_text(resp), latency)

    async def stream(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        on_chunk: ChunkCallback | None = None,
        signal: AbortSignal | None = None,
    ) -> LLMResponse:
        model, contents, gen_config = self._prepare(messages, system, max_tokens, temperature)

        parts: list[str] = []
        t0 = time.monotonic()
        resp = await model.generate_content_async(
            contents, generation_config=gen_config, stream=True,
        )
        async for chunk in resp:
            if signal is not None and signal.aborted:
                raise AbortedError(signal.reason)
            text = _chunk_text(chunk)
            if text:
                parts.append(text)
                if on_chunk is not None:
                    on_chunk(text)
        latency = int((time.monotonic() - t0) * 1000)

        return self._to_response(resp, "".join(parts), latency)

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def model_name(self) -> str:
        return self._model
