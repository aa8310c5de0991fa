# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides temp-backed stores, zero-backoff settings, scripted LLM clients
and sample requests/results. Test doubles live in tests/fakes.py.
"""

from __future__ import annotations

import pytest

from actionextractor.cache.json_store import JsonCacheStore
from actionextractor.config.settings import Settings
from actionextractor.core.models import (
    ExtractionMode,
    ExtractionRequest,
    Phase,
    ResultMetadata,
    SourceKind,
    StructuredResult,
)
from actionextractor.ratelimit.limiter import RateLimiter
from actionextractor.ratelimit.memory_store import MemoryRateLimitStore
from actionextractor.storage.sqlite_store import SqliteExtractionStore
from fakes import VIDEO_URL, FakeTranscriptFetcher, ScriptedLLMClient


# === FIXTURES ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from any .env, with zero backoff."""
    return Settings(
        _env_file=None,
        cache_root=tmp_path / "cache",
        store_path=tmp_path / "actionextractor.db",
        ai_retry_base_delay_s=0.0,
        transcript_retry_base_delay_s=0.0,
    )


@pytest.fixture
def cache_store(tmp_path) -> JsonCacheStore:
    return JsonCacheStore(cache_root=tmp_path / "cache")


@pytest.fixture
def extraction_store(tmp_path):
    store = SqliteExtractionStore(tmp_path / "actionextractor.db")
    yield store
    store.close()


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(MemoryRateLimitStore(), limit=12, window_seconds=3600)


@pytest.fixture
def llm_client() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def transcript_fetcher() -> FakeTranscriptFetcher:
    return FakeTranscriptFetcher()


@pytest.fixture
def video_request() -> ExtractionRequest:
    return ExtractionRequest(
        source_kind=SourceKind.VIDEO,
        locator=VIDEO_URL,
        mode=ExtractionMode.ACTION_PLAN,
        user_id="user-1",
    )


@pytest.fixture
def sample_result() -> StructuredResult:
    return StructuredResult(
        mode=ExtractionMode.ACTION_PLAN,
        language="es",
        objective="Organizar la semana de trabajo",
        phases=[
            Phase(id=1, title="Capturar", items=["Anota todas las tareas pendientes"]),
            Phase(id=2, title="Planificar", items=["Agrupa por proyecto"]),
        ],
        pro_tip="Revisa la lista cada viernes",
        metadata=ResultMetadata(reading_time="3 min", difficulty="Fácil",
                                original_time="1m", saved_time="0m"),
    )
