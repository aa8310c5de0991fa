# tests/unit/llm/test_unit_adapters.py — v1
"""Tests for llm/adapters — Anthropic and OpenAI adapters against faked SDK clients."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from actionextractor.core.cancellation import AbortedError, AbortSignal
from actionextractor.llm.adapters.anthropic_adapter import AnthropicAdapter
from actionextractor.llm.adapters.openai_adapter import OpenAIAdapter
from actionextractor.llm.models import Message

_MESSAGES = [Message(role="user", content="hola")]


def _anthropic_usage():
    return SimpleNamespace(input_tokens=10, output_tokens=5,
                           cache_read_input_tokens=None, cache_creation_input_tokens=0)


class _FakeAnthropicStream:
    def __init__(self, texts: list[str]):
        self._texts = texts
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True
        return False

    @property
    def text_stream(self):
        async def gen():
            for text in self._texts:
                yield text
        return gen()

    async def get_final_message(self):
        return SimpleNamespace(usage=_anthropic_usage(), model="claude-sonnet-4-6")


def _anthropic_adapter(fake_client) -> AnthropicAdapter:
    adapter = AnthropicAdapter(model="claude-sonnet-4-6", api_key="k")
    adapter._AnthropicAdapter__client = fake_client
    return adapter


class TestAnthropicAdapter:
    @pytest.mark.asyncio
    async def test_complete(self):
        response = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="{\"a\": 1}")],
            usage=_anthropic_usage(),
            model="claude-sonnet-4-6",
        )
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=response)
        result = await _anthropic_adapter(client).complete(_MESSAGES, system="sys", max_tokens=50)
        assert result.content == "{\"a\": 1}"
        assert result.input_tokens == 10
        assert result.cache_read_tokens == 0
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert kwargs["max_tokens"] == 50

    @pytest.mark.asyncio
    async def test_stream_forwards_chunks(self):
        stream = _FakeAnthropicStream(["{\"a\"", "", ": 1}"])
        client = MagicMock()
        client.messages.stream = MagicMock(return_value=stream)
        chunks: list[str] = []
        result = await _anthropic_adapter(client).stream(_MESSAGES, on_chunk=chunks.append)
        assert chunks == ["{\"a\"", ": 1}"]
        assert result.content == "{\"a\": 1}"
        assert stream.closed

    @pytest.mark.asyncio
    async def test_stream_abort_closes_stream(self):
        stream = _FakeAnthropicStream(["a", "b"])
        client = MagicMock()
        client.messages.stream = MagicMock(return_value=stream)
        signal = AbortSignal()
        chunks: list[str] = []

        def on_chunk(text: str) -> None:
            chunks.append(text)
            signal.abort("client gone")

        with pytest.raises(AbortedError):
            await _anthropic_adapter(client).stream(_MESSAGES, on_chunk=on_chunk, signal=signal)
        assert chunks == ["a"]
        assert stream.closed


class _FakeOpenAIStream:
    def __init__(self, events):
        self._events = events
        self.close = AsyncMock()

    def __aiter__(self):
        async def gen():
            for event in self._events:
                yield event
        return gen()


def _delta(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))], usage=None)


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_stream_collects_usage(self):
        usage_event = SimpleNamespace(choices=[], usage=SimpleNamespace(prompt_tokens=7, completion_tokens=3))
        stream = _FakeOpenAIStream([_delta("ho"), _delta(None), _delta("la"), usage_event])
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=stream)
        adapter = OpenAIAdapter(model="gpt-4o", api_key="k")
        chunks: list[str] = []
        with patch.object(OpenAIAdapter, "_new_client", return_value=client):
            result = await adapter.stream(_MESSAGES, system="sys", on_chunk=chunks.append)
        assert chunks == ["ho", "la"]
        assert result.content == "hola"
        assert result.input_tokens == 7
        stream.close.assert_awaited_once()
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}

    @pytest.mark.asyncio
    async def test_complete(self):
        resp = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="ok"))],
            usage=SimpleNamespace(prompt_tokens=4, completion_tokens=1),
        )
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=resp)
        with patch.object(OpenAIAdapter, "_new_client", return_value=client):
            result = await OpenAIAdapter(model="gpt-4o").complete(_MESSAGES)
        assert result.content == "ok"
        assert result.provider == "openai"
