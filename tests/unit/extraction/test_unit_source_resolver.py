# tests/unit/extraction/test_unit_source_resolver.py — v1
"""Tests for extraction/source_resolver.py — strategy order and fallbacks."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from actionextractor.cache.models import CacheEntry
from actionextractor.core.errors import SourceUnavailableError
from actionextractor.core.models import ContentSource, ExtractionRequest, SourceKind
from actionextractor.extraction.base_transcript_fetcher import TranscriptError
from actionextractor.extraction.source_resolver import (
    TRUNCATION_MARKER,
    SourceResolver,
    transcript_from_result,
    truncate_for_ai,
)
from actionextractor.extraction.web_extractor import WebPage, WebPageFetcher
from actionextractor.extraction.youtube_transcript import (
    MSG_GENERIC,
    MSG_NO_CAPTIONS,
    MSG_UNAVAILABLE,
    is_retryable_transcript_error,
)
from actionextractor.llm.retry import RetryPolicy
from fakes import TRANSCRIPT, VIDEO_ID, FakeTranscriptFetcher

_POLICY = RetryPolicy(max_attempts=3, base_delay_s=0.0, retryable=is_retryable_transcript_error)

_THROTTLED = TranscriptError("throttled", status=429, retryable=True)
_NO_CAPTIONS = TranscriptError(MSG_NO_CAPTIONS, status=422, retryable=False)
_UNAVAILABLE = TranscriptError(MSG_UNAVAILABLE, status=404, retryable=False)


def _resolver(cache, fetcher=None, web=None, max_ai_chars: int = 50_000) -> SourceResolver:
    return SourceResolver(
        cache=cache,
        transcript_fetcher=fetcher or FakeTranscriptFetcher(),
        web_fetcher=web or AsyncMock(spec=WebPageFetcher),
        transcript_policy=_POLICY,
        max_ai_chars=max_ai_chars,
    )


async def _seed(cache, sample_result, transcript: str | None = None, prompt_version: str = "v1:action_plan:es"):
    await cache.upsert(CacheEntry(
        content_identity=VIDEO_ID,
        prompt_version=prompt_version,
        model_identity="anthropic:claude-sonnet-4-6",
        result=sample_result,
        transcript=transcript,
        video_title="Organiza tu semana",
    ))


class TestTruncation:
    def test_short_text_untouched(self):
        assert truncate_for_ai("  hola mundo ", 100) == ("hola mundo", False)

    def test_cut_at_word_boundary(self):
        text, truncated = truncate_for_ai("uno dos tres cuatro", 10)
        assert truncated
        assert text == f"uno dos\n{TRUNCATION_MARKER}"

    def test_transcript_from_result(self, sample_result):
        text = transcript_from_result(sample_result)
        assert text.splitlines()[0] == "Organizar la semana de trabajo"
        assert "Capturar" in text
        assert text.splitlines()[-1] == "Revisa la lista cada viernes"


class TestVideoStrategies:
    @pytest.mark.asyncio
    async def test_cached_transcript_first(self, cache_store, video_request, sample_result):
        await _seed(cache_store, sample_result, transcript="transcripción guardada")
        fetcher = FakeTranscriptFetcher()
        resolved = await _resolver(cache_store, fetcher).resolve(video_request)
        assert resolved.content_source == ContentSource.CACHE_TRANSCRIPT
        assert resolved.text == "transcripción guardada"
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_live_fetch(self, cache_store, video_request):
        fetcher = FakeTranscriptFetcher()
        resolved = await _resolver(cache_store, fetcher).resolve(video_request)
        assert resolved.content_source == ContentSource.FRESHLY_FETCHED
        assert resolved.transcript == TRANSCRIPT
        assert resolved.word_count == len(TRANSCRIPT.split())
        assert fetcher.calls == [(VIDEO_ID, ["es", "en"])]

    @pytest.mark.asyncio
    async def test_retry_emits_status(self, cache_store, video_request):
        fetcher = FakeTranscriptFetcher([_THROTTLED, TRANSCRIPT])
        statuses: list[tuple[str, str]] = []
        resolved = await _resolver(cache_store, fetcher).resolve(
            video_request, on_status=lambda step, message: statuses.append((step, message)),
        )
        assert resolved.text == TRANSCRIPT
        assert [s for s, _ in statuses] == ["transcript-retry"]
        assert "(2/3)" in statuses[0][1]

    @pytest.mark.asyncio
    async def test_stale_result_after_exhausted_retries(self, cache_store, video_request, sample_result):
        await _seed(cache_store, sample_result, prompt_version="old:action_plan:es")
        fetcher = FakeTranscriptFetcher([_THROTTLED])
        resolved = await _resolver(cache_store, fetcher).resolve(video_request)
        assert len(fetcher.calls) == 3
        assert resolved.content_source == ContentSource.CACHE_STALE_RESULT
        assert resolved.title_hint == "Organiza tu semana"
        assert "Capturar" in resolved.text

    @pytest.mark.asyncio
    async def test_stale_result_when_no_captions(self, cache_store, video_request, sample_result):
        await _seed(cache_store, sample_result)
        fetcher = FakeTranscriptFetcher([_NO_CAPTIONS])
        resolved = await _resolver(cache_store, fetcher).resolve(video_request)
        assert len(fetcher.calls) == 1
        assert resolved.content_source == ContentSource.CACHE_STALE_RESULT

    @pytest.mark.asyncio
    async def test_unavailable_video_has_no_fallback(self, cache_store, video_request, sample_result):
        await _seed(cache_store, sample_result)
        fetcher = FakeTranscriptFetcher([_UNAVAILABLE])
        with pytest.raises(SourceUnavailableError) as exc_info:
            await _resolver(cache_store, fetcher).resolve(video_request)
        assert exc_info.value.message == MSG_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_all_strategies_fail(self, cache_store, video_request):
        fetcher = FakeTranscriptFetcher([_THROTTLED])
        with pytest.raises(SourceUnavailableError) as exc_info:
            await _resolver(cache_store, fetcher).resolve(video_request)
        assert exc_info.value.message == "throttled"
        assert exc_info.value.reason == "no-content"

    @pytest.mark.asyncio
    async def test_unclassified_failure_uses_generic_message(self, cache_store, video_request):
        fetcher = FakeTranscriptFetcher([RuntimeError("boom")])
        with pytest.raises(SourceUnavailableError) as exc_info:
            await _resolver(cache_store, fetcher).resolve(video_request)
        assert exc_info.value.message == MSG_GENERIC

    @pytest.mark.asyncio
    async def test_long_transcript_truncated(self, cache_store, video_request):
        fetcher = FakeTranscriptFetcher(["palabra " * 100])
        resolved = await _resolver(cache_store, fetcher, max_ai_chars=50).resolve(video_request)
        assert resolved.truncated
        assert resolved.text.endswith(TRUNCATION_MARKER)
        assert resolved.word_count == 100


class TestWebAndText:
    @pytest.mark.asyncio
    async def test_web_page(self, cache_store):
        web = AsyncMock(spec=WebPageFetcher)
        web.fetch.return_value = WebPage(title="Plan", text="Primero anota las tareas.")
        request = ExtractionRequest(source_kind=SourceKind.WEB_URL,
                                    locator=" https://example.com/plan ", user_id="u1")
        resolved = await _resolver(cache_store, web=web).resolve(request)
        assert resolved.title_hint == "Plan"
        assert resolved.transcript is None
        web.fetch.assert_awaited_once_with("https://example.com/plan")

    @pytest.mark.asyncio
    async def test_web_failure_propagates(self, cache_store):
        web = AsyncMock(spec=WebPageFetcher)
        web.fetch.side_effect = SourceUnavailableError("blocked", reason="fetch-failed")
        request = ExtractionRequest(source_kind=SourceKind.WEB_URL,
                                    locator="https://example.com", user_id="u1")
        with pytest.raises(SourceUnavailableError, match="blocked"):
            await _resolver(cache_store, web=web).resolve(request)

    @pytest.mark.asyncio
    async def test_raw_text(self, cache_store):
        request = ExtractionRequest(source_kind=SourceKind.FILE_TEXT,
                                    locator="  Haz esto y luego aquello.  ", user_id="u1")
        resolved = await _resolver(cache_store).resolve(request)
        assert resolved.text == "Haz esto y luego aquello."
        assert resolved.word_count == 5

    @pytest.mark.asyncio
    async def test_empty_text(self, cache_store):
        request = ExtractionRequest(source_kind=SourceKind.FILE_TEXT, locator="   ", user_id="u1")
        with pytest.raises(SourceUnavailableError):
            await _resolver(cache_store).resolve(request)
