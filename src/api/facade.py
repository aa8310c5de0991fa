# src/api/facade.py — v3
"""Public API facade: service wiring and a one-call ``extract``.

Usage:
    from actionextractor.api.facade import build_services, extract
    services = build_services(settings)
    outcome = await extract(services, "https://youtu.be/dQw4w9WgXcQ", user_id="cli")

The HTTP server and the CLI both go through ``build_services`` so they
share one set of stores, limiter and AI orchestrators.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from actionextractor.api.auth import BaseSessionResolver, HeaderSessionResolver
from actionextractor.cache.cache_factory import create_cache_store
from actionextractor.config.settings import Settings
from actionextractor.core.errors import ValidationError
from actionextractor.core.models import (
    ExtractionMode,
    ExtractionRequest,
    OutputLanguage,
    SourceKind,
    extract_video_id,
)
from actionextractor.extraction.document_extractor import ExtractedDocument, extract_document
from actionextractor.extraction.source_detector import detect_source_kind
from actionextractor.extraction.source_resolver import SourceResolver
from actionextractor.extraction.video_preview import resolve_video_preview
from actionextractor.extraction.web_extractor import WebPageFetcher
from actionextractor.extraction.youtube_transcript import (
    YouTubeTranscriptFetcher,
    is_retryable_transcript_error,
)
from actionextractor.llm.client_factory import create_client_for
from actionextractor.llm.config import resolve_all
from actionextractor.llm.models import CallOptions
from actionextractor.llm.orchestrator import AIOrchestrator, ai_retry_policy
from actionextractor.llm.retry import RetryPolicy
from actionextractor.parsing.repair_cascade import RepairCascade
from actionextractor.pipeline.models import ExtractionOutcome
from actionextractor.pipeline.runner import ExtractionPipeline, PreviewResolver
from actionextractor.ratelimit.ratelimit_factory import create_rate_limiter
from actionextractor.storage.sqlite_store import SqliteExtractionStore
from actionextractor.storage.writer import PersistenceWriter

if TYPE_CHECKING:
    from actionextractor.cache.base_cache_store import BaseCacheStore
    from actionextractor.extraction.base_transcript_fetcher import BaseTranscriptFetcher
    from actionextractor.llm.base_client import BaseLLMClient
    from actionextractor.ratelimit.limiter import RateLimiter
    from actionextractor.storage.base_store import BaseExtractionStore
    from actionextractor.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Long-lived components shared by every request."""

    settings: Settings
    cache: BaseCacheStore
    rate_limiter: RateLimiter
    store: BaseExtractionStore
    pipeline: ExtractionPipeline
    session_resolver: BaseSessionResolver

    def close(self) -> None:
        for component in (self.cache, self.rate_limiter, self.store):
            try:
                component.close()
            except Exception:
                logger.exception("Failed to close %s", type(component).__name__)


def build_services(
    settings: Settings | None = None,
    *,
    cache: BaseCacheStore | None = None,
    rate_limiter: RateLimiter | None = None,
    store: BaseExtractionStore | None = None,
    extraction_client: BaseLLMClient | None = None,
    repair_client: BaseLLMClient | None = None,
    transcript_fetcher: BaseTranscriptFetcher | None = None,
    web_fetcher: WebPageFetcher | None = None,
    preview_resolver: PreviewResolver | None = None,
    session_resolver: BaseSessionResolver | None = None,
) -> Services:
    """Wire every component from settings.

    Any component passed explicitly replaces the one the settings would
    create (tests inject fakes this way).

    Args:
        settings: Application settings. Loaded from .env if None.

    Returns:
        Services bundle; call ``close()`` when done.
    """
    settings = settings or Settings()

    cache = cache or create_cache_store(settings)
    rate_limiter = rate_limiter or create_rate_limiter(settings)
    store = store or SqliteExtractionStore(settings.store_path)

    assignments = resolve_all(settings)
    extraction_client = extraction_client or create_client_for(assignments["extraction"], settings)
    repair_client = repair_client or create_client_for(assignments["repair"], settings)

    extraction_ai = AIOrchestrator(
        extraction_client,
        ai_retry_policy(
            settings.ai_max_attempts,
            settings.ai_retry_base_delay_s,
            settings.ai_retry_backoff_factor,
        ),
        CallOptions(
            max_tokens=settings.llm_extraction_max_tokens,
            temperature=settings.llm_default_temperature,
        ),
    )
    repair_ai = AIOrchestrator(
        repair_client,
        ai_retry_policy(
            settings.ai_repair_max_attempts,
            settings.ai_retry_base_delay_s,
            settings.ai_retry_backoff_factor,
        ),
        CallOptions(max_tokens=settings.llm_repair_max_tokens, temperature=0.0),
    )

    resolver = SourceResolver(
        cache=cache,
        transcript_fetcher=transcript_fetcher or YouTubeTranscriptFetcher(),
        web_fetcher=web_fetcher or WebPageFetcher(
            timeout_s=settings.web_fetch_timeout_s, max_chars=settings.max_web_chars,
        ),
        transcript_policy=RetryPolicy(
            max_attempts=settings.transcript_max_attempts,
            base_delay_s=settings.transcript_retry_base_delay_s,
            retryable=is_retryable_transcript_error,
        ),
        transcript_languages=settings.transcript_languages_list,
        max_ai_chars=settings.max_ai_chars,
    )

    pipeline = ExtractionPipeline(
        cache=cache,
        rate_limiter=rate_limiter,
        resolver=resolver,
        extraction_ai=extraction_ai,
        repair=RepairCascade(repair_ai),
        writer=PersistenceWriter(cache, store),
        prompt_version_tag=settings.prompt_version,
        preview_timeout_s=settings.oembed_timeout_s,
        preview_resolver=preview_resolver or resolve_video_preview,
    )
    logger.info(
        "Services ready: extraction=%s repair=%s cache=%s rate_limit=%s",
        extraction_ai.model_identity, repair_ai.model_identity,
        settings.cache_backend, settings.rate_limit_backend,
    )
    return Services(
        settings=settings,
        cache=cache,
        rate_limiter=rate_limiter,
        store=store,
        pipeline=pipeline,
        session_resolver=session_resolver or HeaderSessionResolver(settings.session_header),
    )


def build_request(
    locator: str,
    user_id: str,
    mode: ExtractionMode | str = ExtractionMode.ACTION_PLAN,
    output_language: OutputLanguage | str = OutputLanguage.AUTO,
    source_hint: str | None = None,
) -> ExtractionRequest:
    """Build a request from loose caller arguments.

    Raises:
        ValidationError: If the locator is empty, the hint unknown, or a
            video locator carries no video id.
    """
    locator = locator.strip()
    if not locator:
        raise ValidationError("Provide a url or a text to extract from.")
    kind = detect_source_kind(locator, source_hint)
    if kind == SourceKind.VIDEO and extract_video_id(locator) is None:
        raise ValidationError("Invalid YouTube URL.")
    return ExtractionRequest(
        source_kind=kind,
        locator=locator,
        mode=ExtractionMode(mode),
        output_language=OutputLanguage(output_language),
        user_id=user_id,
    )


async def extract(
    services: Services,
    locator: str,
    user_id: str,
    mode: ExtractionMode | str = ExtractionMode.ACTION_PLAN,
    output_language: OutputLanguage | str = OutputLanguage.AUTO,
    source_hint: str | None = None,
    call_logger: CallLogger | None = None,
) -> ExtractionOutcome:
    """Run one batch extraction end-to-end.

    Args:
        services: Wired services.
        locator: Video URL, web URL or raw text.
        user_id: Caller identity (rate limit and history owner).
        call_logger: When given, receives every AI call of the run.

    Raises:
        PipelineError: Classified failure.
    """
    request = build_request(locator, user_id, mode, output_language, source_hint)
    request_id = str(uuid.uuid4())
    logger.info("Extracting %s for %s (%s)", request.content_identity, user_id, request.mode.value)
    return await services.pipeline.run(request, request_id=request_id, call_logger=call_logger)


async def read_document(settings: Settings, filename: str, data: bytes) -> ExtractedDocument:
    """Text of an uploaded PDF/DOCX under the configured size limits.

    Parsing runs in a worker thread.

    Raises:
        ValidationError: Unsupported extension.
        DocumentTooLargeError: Over the size ceiling for its type.
        SourceUnavailableError: Unreadable file or no text in it.
    """
    return await asyncio.to_thread(
        extract_document,
        filename,
        data,
        max_pdf_bytes=settings.max_pdf_bytes,
        max_docx_bytes=settings.max_docx_bytes,
    )
