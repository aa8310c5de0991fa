# src/storage/models.py — v2
"""Relational store models: ExtractionRecord, UsageRecord."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from actionextractor.core.models import ContentSource, SourceKind, StructuredResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NewExtraction(BaseModel):
    """Fields of an extraction record before the store assigns ordering."""

    user_id: str
    url: str | None = None
    source_kind: SourceKind
    video_id: str | None = None
    video_title: str | None = None
    thumbnail_url: str | None = None
    content_source: ContentSource = ContentSource.FRESHLY_FETCHED
    result: StructuredResult


class ExtractionRecord(NewExtraction):
    """Durable extraction owned by a user."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    order_number: int
    created_at: datetime = Field(default_factory=_utcnow)


class UsageRecord(BaseModel):
    """AI usage/cost telemetry for one call."""

    extraction_id: str | None = None
    user_id: str
    step: str  # extraction, repair-1, repair-2
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    estimated_cost_usd: float = 0.0
    latency_ms: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
