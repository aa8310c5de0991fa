# src/llm/base_client.py — v2
"""Abstract LLM client interface.

Adapters implement a batch ``complete`` and a streaming ``stream`` call.
Both return the same normalized LLMResponse.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from actionextractor.core.cancellation import AbortSignal
from actionextractor.llm.models import LLMResponse, Message

ChunkCallback = Callable[[str], None]


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Text completion."""

    @abstractmethod
    async def stream(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        on_chunk: ChunkCallback | None = None,
        signal: AbortSignal | None = None,
    ) -> LLMResponse:
        """Streaming completion.

        ``on_chunk`` receives each text delta as it arrives. When ``signal``
        fires the adapter stops reading, closes the provider stream and
        raises AbortedError; no chunk is delivered after that point.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai, google)."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier requested from the provider."""
