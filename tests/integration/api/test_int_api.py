# tests/integration/api/test_int_api.py — v2
"""Integration tests for the HTTP surface.

Covers: api/server.py, api/sse.py, api/facade.py with the real pipeline,
JSON cache, SQLite store and memory rate limiter. AI provider, transcript
fetcher and oEmbed preview are faked. No network access.
"""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from actionextractor.api.facade import build_services
from actionextractor.api.server import create_app
from actionextractor.ratelimit.limiter import RateLimiter
from actionextractor.ratelimit.memory_store import MemoryRateLimitStore
from actionextractor.version import __version__
from fakes import (
    VIDEO_ID,
    VIDEO_URL,
    FakeTranscriptFetcher,
    ScriptedLLMClient,
    StatusError,
    fake_preview,
    make_docx,
    make_pdf,
)

USER = {"X-User-Id": "user-1"}


def _parse_sse(body: str) -> list[tuple[str, dict]]:
    events = []
    for frame in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in frame.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


@pytest.fixture
def llm():
    return ScriptedLLMClient()


@pytest.fixture
def make_client(settings):
    def make(llm=None, limit: int = 12, **overrides) -> TestClient:
        services = build_services(
            settings.model_copy(update=overrides),
            extraction_client=llm or ScriptedLLMClient(),
            repair_client=llm or ScriptedLLMClient(),
            transcript_fetcher=FakeTranscriptFetcher(),
            preview_resolver=fake_preview,
            rate_limiter=RateLimiter(MemoryRateLimitStore(), limit=limit, window_seconds=3600),
        )
        return TestClient(create_app(services=services))

    return make


class TestHealth:
    def test_health(self, make_client):
        with make_client() as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}


class TestBatchExtract:
    def test_requires_user(self, make_client):
        with make_client() as client:
            response = client.post("/api/extract", json={"url": VIDEO_URL})
        assert response.status_code == 401
        assert response.json()["kind"] == "unauthenticated"

    def test_fresh_then_cached(self, make_client, llm):
        with make_client(llm) as client:
            first = client.post("/api/extract", json={"url": VIDEO_URL}, headers=USER)
            second = client.post("/api/extract", json={"url": VIDEO_URL}, headers=USER)

        assert first.status_code == 200
        body = first.json()
        assert body["cached"] is False
        assert body["videoId"] == VIDEO_ID
        assert body["sourceType"] == "video"
        assert body["objective"] == "Organizar la semana de trabajo"
        assert body["phases"][0]["title"] == "Capturar"
        assert body["metadata"]["difficulty"] == "Fácil"
        assert body["videoTitle"] == "Organiza tu semana"
        assert body["thumbnailUrl"].endswith(f"/vi/{VIDEO_ID}/hqdefault.jpg")
        assert body["orderNumber"] == 1

        assert second.json()["cached"] is True
        assert second.json()["orderNumber"] == 2
        assert len(llm.calls) == 1

    def test_raw_text(self, make_client):
        with make_client() as client:
            response = client.post(
                "/api/extract",
                json={"text": "Plan the week. List every task first.", "outputLanguage": "en"},
                headers=USER,
            )
        assert response.status_code == 200
        assert response.json()["sourceType"] == "file_text"
        assert response.json()["url"] is None
        assert response.json()["metadata"]["difficulty"] == "Easy"

    def test_empty_body_is_validation_error(self, make_client):
        with make_client() as client:
            response = client.post("/api/extract", json={}, headers=USER)
        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

    def test_malformed_body_is_validation_error(self, make_client):
        with make_client() as client:
            response = client.post("/api/extract", json={"url": 42}, headers=USER)
        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

    def test_ai_failure_classified(self, make_client):
        with make_client(ScriptedLLMClient([StatusError(401, "bad key")])) as client:
            response = client.post("/api/extract", json={"url": VIDEO_URL}, headers=USER)
        assert response.status_code == 503
        assert response.json()["kind"] == "ai-auth"

    def test_rate_limited(self, make_client):
        with make_client(limit=1) as client:
            client.post("/api/extract", json={"text": "first text"}, headers=USER)
            response = client.post("/api/extract", json={"text": "second text"}, headers=USER)
        assert response.status_code == 429
        assert response.headers["X-RateLimit-Limit"] == "1"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) > 0
        body = response.json()
        assert set(body) == {"error", "limit", "remaining", "resetAt"}
        assert body["remaining"] == 0


class TestRateLimitEndpoint:
    def test_snapshot_does_not_consume(self, make_client):
        with make_client(limit=3) as client:
            client.post("/api/extract", json={"text": "some text"}, headers=USER)
            first = client.get("/api/rate-limit", headers=USER)
            second = client.get("/api/rate-limit", headers=USER)
        assert first.status_code == 200
        assert first.json()["used"] == 1
        assert first.json()["remaining"] == 2
        assert second.json()["used"] == 1
        assert first.headers["X-RateLimit-Remaining"] == "2"
        assert "Retry-After" not in first.headers

    def test_requires_user(self, make_client):
        with make_client() as client:
            assert client.get("/api/rate-limit").status_code == 401


class TestStreamingExtract:
    def test_event_stream(self, make_client):
        with make_client() as client:
            response = client.post("/api/extract/stream", json={"url": VIDEO_URL}, headers=USER)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache, no-transform"
        events = _parse_sse(response.text)
        names = [name for name, _ in events]
        assert names[:4] == ["status"] * 4
        assert [data["step"] for _, data in events[:4]] == ["cache", "transcript", "language", "analyzing"]
        assert "text" in names
        assert names[-2:] == ["result", "done"]
        assert events[-2][1]["videoId"] == VIDEO_ID
        assert events[-1][1] == {"ok": True}

    def test_stream_error_event(self, make_client):
        with make_client(ScriptedLLMClient([StatusError(500, "upstream")])) as client:
            response = client.post("/api/extract/stream", json={"url": VIDEO_URL}, headers=USER)
        events = _parse_sse(response.text)
        assert [name for name, _ in events][-2:] == ["error", "done"]
        assert events[-2][1]["kind"] == "ai-upstream"
        assert events[-1][1] == {"ok": False}

    def test_rate_limited_before_stream(self, make_client):
        with make_client(limit=1) as client:
            client.post("/api/extract/stream", json={"text": "first"}, headers=USER)
            response = client.post("/api/extract/stream", json={"text": "second"}, headers=USER)
        assert response.status_code == 429
        assert response.headers["content-type"].startswith("application/json")


class TestUploadExtract:
    def test_docx_upload_then_extract(self, make_client):
        data = make_docx("Primero anota todas las tareas.", "Luego agrupa por proyecto.")
        with make_client() as client:
            upload = client.post(
                "/api/extract/upload",
                files={"file": ("semana.docx", data)},
                headers=USER,
            )
            assert upload.status_code == 200
            body = upload.json()
            assert set(body) == {"text", "charCount", "sourceLabel", "sourceType"}
            assert body["sourceType"] == "docx"
            assert body["sourceLabel"] == "semana.docx"
            assert body["charCount"] == len(body["text"])
            assert "Luego agrupa por proyecto." in body["text"]

            result = client.post("/api/extract", json={"text": body["text"]}, headers=USER)
        assert result.status_code == 200
        assert result.json()["sourceType"] == "file_text"

    def test_pdf_upload(self, make_client):
        data = make_pdf("Revisa la lista cada viernes", title="Plan semanal")
        with make_client() as client:
            response = client.post(
                "/api/extract/upload", files={"file": ("plan.PDF", data)}, headers=USER,
            )
        assert response.status_code == 200
        assert response.json()["sourceType"] == "pdf"
        assert response.json()["sourceLabel"] == "Plan semanal"

    def test_unsupported_format_is_400(self, make_client):
        with make_client() as client:
            response = client.post(
                "/api/extract/upload", files={"file": ("notes.txt", b"hola")}, headers=USER,
            )
        assert response.status_code == 400
        assert response.json()["kind"] == "validation"
        assert ".pdf and .docx" in response.json()["error"]

    def test_oversize_is_413(self, make_client):
        with make_client(max_pdf_bytes=1024) as client:
            response = client.post(
                "/api/extract/upload", files={"file": ("big.pdf", b"%" * 2048)}, headers=USER,
            )
        assert response.status_code == 413
        assert response.json()["kind"] == "payload-too-large"

    def test_unreadable_is_422(self, make_client):
        with make_client() as client:
            response = client.post(
                "/api/extract/upload", files={"file": ("broken.docx", b"not a zip")}, headers=USER,
            )
        assert response.status_code == 422
        assert response.json()["kind"] == "source-unavailable"

    def test_missing_file_is_400(self, make_client):
        with make_client() as client:
            response = client.post("/api/extract/upload", headers=USER)
        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

    def test_requires_user(self, make_client):
        with make_client() as client:
            response = client.post(
                "/api/extract/upload", files={"file": ("semana.docx", make_docx("hola"))},
            )
        assert response.status_code == 401
