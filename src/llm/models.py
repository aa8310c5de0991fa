# src/llm/models.py — v2
"""LLM-specific types: Message, Prompt, CallOptions, LLMResponse."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class Prompt(BaseModel):
    """Rendered system + user prompt pair for one AI call."""

    system: str
    user: str

    def to_messages(self) -> list[Message]:
        return [Message(role="user", content=self.user)]


class CallOptions(BaseModel):
    """Per-call generation knobs."""

    max_tokens: int = 2048
    temperature: float = 0.2


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    model: str
    provider: str
    latency_ms: int
    raw_response: Any = None
