# tests/unit/extraction/test_unit_youtube_transcript.py — v2
"""Tests for extraction/youtube_transcript.py — fetch and error classification."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from youtube_transcript_api import NoTranscriptFound, TranscriptsDisabled, VideoUnavailable

from actionextractor.extraction.base_transcript_fetcher import TranscriptError
from actionextractor.extraction.youtube_transcript import (
    MSG_GENERIC,
    MSG_NO_CAPTIONS,
    MSG_THROTTLED,
    MSG_UNAVAILABLE,
    EmptyTranscriptError,
    YouTubeTranscriptFetcher,
    classify_transcript_error,
    is_retryable_transcript_error,
)


class TooManyRequests(Exception):
    """Shaped like the library's throttling error."""


def _snippets(*texts: str):
    return [SimpleNamespace(text=t) for t in texts]


class TestClassifyTranscriptError:
    def test_throttled(self):
        err = classify_transcript_error(TooManyRequests())
        assert (err.status, err.retryable, err.message) == (429, True, MSG_THROTTLED)

    def test_unavailable(self):
        err = classify_transcript_error(VideoUnavailable("dQw4w9WgXcQ"))
        assert (err.status, err.retryable, err.message) == (404, False, MSG_UNAVAILABLE)

    def test_disabled(self):
        err = classify_transcript_error(TranscriptsDisabled("dQw4w9WgXcQ"))
        assert (err.status, err.retryable, err.message) == (422, False, MSG_NO_CAPTIONS)

    def test_not_found(self):
        err = classify_transcript_error(NoTranscriptFound("dQw4w9WgXcQ", ["es"], MagicMock()))
        assert err.status == 422

    def test_empty(self):
        assert classify_transcript_error(EmptyTranscriptError("x")).status == 422

    def test_other_is_retryable(self):
        err = classify_transcript_error(ConnectionError("reset"))
        assert (err.status, err.retryable, err.message) == (502, True, MSG_GENERIC)

    def test_passthrough(self):
        original = TranscriptError("x", status=429, retryable=True)
        assert classify_transcript_error(original) is original

    def test_retryable_predicate(self):
        assert is_retryable_transcript_error(TranscriptError("x", 429, True))
        assert not is_retryable_transcript_error(TranscriptError("x", 404, False))


class TestYouTubeTranscriptFetcher:
    @pytest.mark.asyncio
    async def test_joins_snippets(self):
        api = MagicMock()
        api.fetch.return_value = _snippets("Hola a todos", "  ", "hoy\nvemos")
        text = await YouTubeTranscriptFetcher(api=api).fetch("dQw4w9WgXcQ", ["es", "en"])
        assert text == "Hola a todos hoy vemos"
        api.fetch.assert_called_once_with("dQw4w9WgXcQ", languages=["es", "en"])

    @pytest.mark.asyncio
    async def test_empty_transcript_is_no_captions(self):
        api = MagicMock()
        api.fetch.return_value = _snippets(" ")
        with pytest.raises(TranscriptError) as exc_info:
            await YouTubeTranscriptFetcher(api=api).fetch("dQw4w9WgXcQ", ["es"])
        assert exc_info.value.status == 422

    @pytest.mark.asyncio
    async def test_library_error_classified(self):
        api = MagicMock()
        api.fetch.side_effect = VideoUnavailable("dQw4w9WgXcQ")
        with pytest.raises(TranscriptError) as exc_info:
            await YouTubeTranscriptFetcher(api=api).fetch("dQw4w9WgXcQ", ["es"])
        assert exc_info.value.status == 404
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_falls_back_to_any_track(self):
        api = MagicMock()
        api.fetch.side_effect = NoTranscriptFound("dQw4w9WgXcQ", ["es", "en"], MagicMock())
        track = MagicMock(language_code="pt")
        track.fetch.return_value = _snippets("Olá a todos")
        api.list.return_value = [track]
        text = await YouTubeTranscriptFetcher(api=api).fetch("dQw4w9WgXcQ", ["es", "en"])
        assert text == "Olá a todos"
        api.list.assert_called_once_with("dQw4w9WgXcQ")

    @pytest.mark.asyncio
    async def test_no_tracks_is_no_captions(self):
        api = MagicMock()
        api.fetch.side_effect = NoTranscriptFound("dQw4w9WgXcQ", ["es"], MagicMock())
        api.list.return_value = []
        with pytest.raises(TranscriptError) as exc_info:
            await YouTubeTranscriptFetcher(api=api).fetch("dQw4w9WgXcQ", ["es"])
        assert (exc_info.value.status, exc_info.value.message) == (422, MSG_NO_CAPTIONS)
