# src/pipeline/models.py — v1
"""Run-level models: precheck outcome and the extraction response."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from actionextractor.cache.models import CacheEntry, CacheKey
from actionextractor.core.models import (
    ContentSource,
    ExtractionRequest,
    StructuredResult,
)
from actionextractor.ratelimit.models import RateLimitDecision
from actionextractor.storage.models import ExtractionRecord


class Precheck(BaseModel):
    """Cache lookup + rate-limit decision taken before any paid work."""

    model_config = ConfigDict(protected_namespaces=())

    request: ExtractionRequest
    key: CacheKey
    cache_entry: CacheEntry | None = None
    decision: RateLimitDecision | None = None

    @property
    def cache_hit(self) -> bool:
        return self.cache_entry is not None


class ExtractionResponse(StructuredResult):
    """Batch response body and payload of the stream ``result`` event."""

    cached: bool = False
    id: str | None = None
    order_number: int | None = None
    created_at: datetime | None = None
    source_type: str
    url: str | None = None
    video_id: str | None = None
    video_title: str | None = None
    thumbnail_url: str | None = None
    content_source: ContentSource = ContentSource.FRESHLY_FETCHED


class ExtractionOutcome(BaseModel):
    """Everything a finished run produced."""

    request: ExtractionRequest
    result: StructuredResult
    cached: bool = False
    record: ExtractionRecord | None = None
    content_source: ContentSource = ContentSource.FRESHLY_FETCHED
    video_title: str | None = None
    thumbnail_url: str | None = None

    def to_response(self) -> ExtractionResponse:
        return ExtractionResponse(
            **self.result.model_dump(),
            cached=self.cached,
            id=self.record.id if self.record else None,
            order_number=self.record.order_number if self.record else None,
            created_at=self.record.created_at if self.record else None,
            source_type=self.request.source_kind.value,
            url=self.request.url,
            video_id=self.request.video_id,
            video_title=self.video_title,
            thumbnail_url=self.thumbnail_url,
            content_source=self.content_source,
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready camelCase dict."""
        return self.to_response().model_dump(mode="json", by_alias=True)
