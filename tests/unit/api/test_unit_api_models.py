# tests/unit/api/test_unit_api_models.py — v1
"""Tests for api/models.py, api/auth.py and api/sse.py."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from actionextractor.api.auth import HeaderSessionResolver
from actionextractor.api.models import ExtractRequestBody, RateLimitBody
from actionextractor.api.sse import format_sse
from actionextractor.core.errors import UnauthenticatedError, ValidationError
from actionextractor.core.models import ExtractionMode, OutputLanguage, SourceKind
from actionextractor.pipeline.events import EventType, PipelineEvent
from actionextractor.ratelimit.models import RateLimitDecision
from fakes import VIDEO_ID, VIDEO_URL


class TestExtractRequestBody:
    def test_camel_case_input(self):
        body = ExtractRequestBody.model_validate(
            {"url": VIDEO_URL, "mode": "key_quotes", "outputLanguage": "en"},
        )
        request = body.to_request("u1")
        assert request.source_kind == SourceKind.VIDEO
        assert request.video_id == VIDEO_ID
        assert request.mode == ExtractionMode.KEY_QUOTES
        assert request.output_language == OutputLanguage.EN
        assert request.user_id == "u1"

    def test_unknown_values_fall_back(self):
        body = ExtractRequestBody.model_validate(
            {"text": "hola", "mode": "haiku", "outputLanguage": "fr"},
        )
        assert body.mode == ExtractionMode.ACTION_PLAN
        assert body.output_language == OutputLanguage.AUTO

    def test_text_is_raw_text_even_when_url_like(self):
        request = ExtractRequestBody(text="https://example.com is my site").to_request("u1")
        assert request.source_kind == SourceKind.FILE_TEXT

    def test_web_url(self):
        request = ExtractRequestBody(url="https://example.com/post").to_request("u1")
        assert request.source_kind == SourceKind.WEB_URL

    def test_empty_body_rejected(self):
        with pytest.raises(ValidationError):
            ExtractRequestBody(text="   ").to_request("u1")

    def test_video_hint_without_id_rejected(self):
        with pytest.raises(ValidationError, match="Invalid YouTube URL"):
            ExtractRequestBody(url="https://example.com", sourceType="video").to_request("u1")

    def test_unknown_hint_rejected(self):
        with pytest.raises(ValidationError):
            ExtractRequestBody(url="https://example.com", source_type="podcast").to_request("u1")


class TestRateLimitBody:
    def test_from_decision_camel_case(self):
        decision = RateLimitDecision(
            allowed=False, limit=12, used=12, remaining=0,
            reset_at=datetime(2026, 1, 1, tzinfo=timezone.utc), retry_after_seconds=30,
        )
        body = RateLimitBody.from_decision(decision, error="slow down")
        dumped = body.model_dump(mode="json", by_alias=True)
        assert dumped["retryAfterSeconds"] == 30
        assert dumped["resetAt"].startswith("2026-01-01T00:00:00")
        assert dumped["error"] == "slow down"


class TestHeaderSessionResolver:
    @pytest.mark.asyncio
    async def test_resolves_header(self):
        resolver = HeaderSessionResolver("X-User-Id")
        request = SimpleNamespace(headers={"X-User-Id": " alice "})
        assert await resolver.require_user(request) == "alice"

    @pytest.mark.asyncio
    async def test_missing_header(self):
        resolver = HeaderSessionResolver("X-User-Id")
        with pytest.raises(UnauthenticatedError):
            await resolver.require_user(SimpleNamespace(headers={}))


class TestFormatSse:
    def test_frame(self):
        frame = format_sse(PipelineEvent(type=EventType.STATUS, data={"step": "cache", "message": "Revisión"}))
        assert frame.startswith("event: status\ndata: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame.split("data: ", 1)[1]) == {"step": "cache", "message": "Revisión"}
        assert "Revisión" in frame
