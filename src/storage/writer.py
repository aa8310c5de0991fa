# src/storage/writer.py — v1
"""Persistence writer: cache entry, extraction record, AI usage.

The three writes are independent. A failing write is logged and the
run's result is still returned; only the record fields become null.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from actionextractor.cache.base_cache_store import BaseCacheStore
from actionextractor.cache.models import CacheEntry, CacheKey
from actionextractor.core.models import (
    ContentSource,
    ExtractionRequest,
    StructuredResult,
)
from actionextractor.storage.base_store import BaseExtractionStore
from actionextractor.storage.models import ExtractionRecord, NewExtraction, UsageRecord
from actionextractor.tracking.models import LLMCallRecord

logger = logging.getLogger(__name__)


class PersistOutcome(BaseModel):
    """What the writer managed to persist."""

    record: ExtractionRecord | None = None
    cache_written: bool = False
    usage_written: int = 0


class PersistenceWriter:
    """Commits the durable side effects of a finished run."""

    def __init__(self, cache: BaseCacheStore, store: BaseExtractionStore) -> None:
        self._cache = cache
        self._store = store

    async def commit_success(
        self,
        request: ExtractionRequest,
        key: CacheKey,
        result: StructuredResult,
        content_source: ContentSource,
        transcript: str | None,
        video_title: str | None,
        thumbnail_url: str | None,
        calls: list[LLMCallRecord],
    ) -> PersistOutcome:
        """Upsert the cache entry, create the record, then record usage."""
        outcome = PersistOutcome()

        try:
            await self._cache.upsert(CacheEntry(
                content_identity=key.content_identity,
                prompt_version=key.prompt_version,
                model_identity=key.model_identity,
                result=result,
                transcript=transcript,
                video_title=video_title,
                thumbnail_url=thumbnail_url,
            ))
            outcome.cache_written = True
        except Exception:
            logger.exception("Cache write failed for %s", key.content_identity)

        outcome.record = await self._create_record(
            request, result, content_source, video_title, thumbnail_url,
        )

        usage = [
            UsageRecord(
                extraction_id=outcome.record.id if outcome.record else None,
                user_id=request.user_id,
                step=call.step,
                provider=call.provider,
                model=call.model,
                input_tokens=call.input_tokens,
                output_tokens=call.output_tokens,
                estimated_cost_usd=call.estimated_cost_usd,
                latency_ms=call.latency_ms,
            )
            for call in calls
        ]
        try:
            await self._store.record_usage(usage)
            outcome.usage_written = len(usage)
        except Exception:
            logger.exception("Usage write failed for %d call(s)", len(usage))

        return outcome

    async def commit_cache_hit(
        self,
        request: ExtractionRequest,
        entry: CacheEntry,
    ) -> PersistOutcome:
        """Only the extraction record is written for a cache hit."""
        record = await self._create_record(
            request,
            entry.result,
            ContentSource.FRESHLY_FETCHED,
            entry.video_title,
            entry.thumbnail_url,
        )
        return PersistOutcome(record=record)

    async def _create_record(
        self,
        request: ExtractionRequest,
        result: StructuredResult,
        content_source: ContentSource,
        video_title: str | None,
        thumbnail_url: str | None,
    ) -> ExtractionRecord | None:
        try:
            return await self._store.create_record(NewExtraction(
                user_id=request.user_id,
                url=request.url,
                source_kind=request.source_kind,
                video_id=request.video_id,
                video_title=video_title,
                thumbnail_url=thumbnail_url,
                content_source=content_source,
                result=result,
            ))
        except Exception:
            logger.exception("Extraction record write failed for user %s", request.user_id)
            return None
