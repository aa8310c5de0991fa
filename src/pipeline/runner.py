# src/pipeline/runner.py — v3
"""Extraction pipeline runner.

Control flow of one run:
  cache lookup → rate limit (skipped on a hit) → source resolution →
  language → prompt → AI call (batch or streamed) → parse / repair →
  persistence → result.

``run`` is the batch form and raises classified PipelineErrors.
``run_streaming`` drives an EventChannel and always terminates it with
``done`` unless the run was aborted.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Callable

from actionextractor.cache.base_cache_store import BaseCacheStore
from actionextractor.cache.models import CacheEntry, CacheKey, build_prompt_version
from actionextractor.core.cancellation import AbortedError, AbortSignal
from actionextractor.core.errors import INTERNAL_ERROR_MESSAGE, ErrorKind, PipelineError
from actionextractor.core.models import ExtractionRequest, SourceKind
from actionextractor.extraction.language_detector import resolve_output_language
from actionextractor.extraction.source_resolver import SourceResolver
from actionextractor.extraction.video_preview import VideoPreview, resolve_video_preview
from actionextractor.llm.orchestrator import AIOrchestrator
from actionextractor.logging.context import set_request_context, set_step_context
from actionextractor.parsing.repair_cascade import RepairCascade
from actionextractor.pipeline.events import EventChannel
from actionextractor.pipeline.models import ExtractionOutcome, Precheck
from actionextractor.prompts.builder import build_prompt
from actionextractor.ratelimit.limiter import RateLimiter
from actionextractor.storage.writer import PersistenceWriter
from actionextractor.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

PreviewResolver = Callable[..., Awaitable[VideoPreview]]

_STATUS_MESSAGES = {
    "cache": "Checking previous results",
    "cached": "Found a previous result",
    "transcript": "Fetching content",
    "language": "Detecting output language",
    "analyzing": "Analyzing content with AI",
}


class ExtractionPipeline:
    """Wires the pipeline components for batch and streaming runs."""

    def __init__(
        self,
        cache: BaseCacheStore,
        rate_limiter: RateLimiter,
        resolver: SourceResolver,
        extraction_ai: AIOrchestrator,
        repair: RepairCascade,
        writer: PersistenceWriter,
        prompt_version_tag: str,
        preview_timeout_s: float = 4.5,
        preview_resolver: PreviewResolver = resolve_video_preview,
    ) -> None:
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._resolver = resolver
        self._ai = extraction_ai
        self._repair = repair
        self._writer = writer
        self._prompt_version_tag = prompt_version_tag
        self._preview_timeout_s = preview_timeout_s
        self._preview_resolver = preview_resolver

    def cache_key(self, request: ExtractionRequest) -> CacheKey:
        return CacheKey(
            content_identity=request.content_identity,
            prompt_version=build_prompt_version(
                self._prompt_version_tag, request.mode.value, request.output_language.value,
            ),
            model_identity=self._ai.model_identity,
        )

    async def precheck(self, request: ExtractionRequest) -> Precheck:
        """Exact cache lookup, then the rate limit when the cache missed.

        Raises:
            RateLimitedError: When the caller's quota is exhausted.
        """
        key = self.cache_key(request)
        entry = await self._cache.lookup(key)
        if entry is not None:
            logger.info("Cache hit for %s (%s)", key.content_identity, key.prompt_version)
            return Precheck(request=request, key=key, cache_entry=entry)
        decision = await self._rate_limiter.enforce(request.user_id)
        return Precheck(request=request, key=key, decision=decision)

    async def run(
        self,
        request: ExtractionRequest,
        signal: AbortSignal | None = None,
        channel: EventChannel | None = None,
        precheck: Precheck | None = None,
        request_id: str | None = None,
        call_logger: CallLogger | None = None,
    ) -> ExtractionOutcome:
        """Execute one extraction.

        Args:
            request: What to extract.
            signal: Abort signal for the run.
            channel: When given, progress is streamed through it (status,
                text chunks and the final result).
            precheck: Result of an earlier ``precheck`` call, reused as is.
            request_id: Correlation id for logs.
            call_logger: Receives every AI call of a fresh run.

        Raises:
            PipelineError: Classified failure.
            AbortedError: If ``signal`` fires.
        """
        signal = signal or AbortSignal()
        set_request_context(
            request_id or str(uuid.uuid4()),
            user_id=request.user_id,
            content_identity=request.content_identity,
        )

        self._status(channel, "cache")
        if precheck is None:
            precheck = await self.precheck(request)

        if precheck.cache_entry is not None:
            outcome = await self._serve_cache_hit(precheck.request, precheck.cache_entry, channel)
        else:
            outcome = await self._run_fresh(request, precheck.key, signal, channel, call_logger)

        signal.raise_if_aborted()
        if channel is not None:
            channel.result(outcome.to_payload())
        return outcome

    async def run_streaming(
        self,
        request: ExtractionRequest,
        channel: EventChannel,
        signal: AbortSignal,
        precheck: Precheck | None = None,
        request_id: str | None = None,
    ) -> None:
        """Run and translate every outcome into channel events."""
        try:
            await self.run(request, signal=signal, channel=channel, precheck=precheck,
                           request_id=request_id)
        except AbortedError:
            logger.info("Run aborted by caller")
            channel.abort()
            return
        except asyncio.CancelledError:
            channel.abort()
            raise
        except PipelineError as e:
            logger.warning("Run failed: %s (%s)", e.message, e.kind.value)
            channel.error(e.message, e.kind.value)
            channel.done(ok=False)
            return
        except Exception:
            logger.exception("Unexpected pipeline failure")
            channel.error(INTERNAL_ERROR_MESSAGE, ErrorKind.INTERNAL.value)
            channel.done(ok=False)
            return
        channel.done(ok=True)

    # --- Internal helpers ---

    def _status(self, channel: EventChannel | None, step: str, message: str | None = None) -> None:
        set_step_context(step)
        text = message or _STATUS_MESSAGES.get(step, step)
        logger.debug("Step %s: %s", step, text)
        if channel is not None:
            channel.status(step, text)

    async def _serve_cache_hit(
        self, request: ExtractionRequest, entry: CacheEntry, channel: EventChannel | None,
    ) -> ExtractionOutcome:
        self._status(channel, "cached")
        persisted = await self._writer.commit_cache_hit(request, entry)
        return ExtractionOutcome(
            request=request,
            result=entry.result,
            cached=True,
            record=persisted.record,
            video_title=entry.video_title,
            thumbnail_url=entry.thumbnail_url,
        )

    async def _run_fresh(
        self,
        request: ExtractionRequest,
        key: CacheKey,
        signal: AbortSignal,
        channel: EventChannel | None,
        call_logger: CallLogger | None = None,
    ) -> ExtractionOutcome:
        def on_status(step: str, message: str) -> None:
            self._status(channel, step, message)

        self._status(channel, "transcript")
        resolved = await self._resolver.resolve(request, signal=signal, on_status=on_status)

        preview_task: asyncio.Task[VideoPreview] | None = None
        if request.source_kind == SourceKind.VIDEO and request.video_id:
            preview_task = asyncio.create_task(self._preview_resolver(
                request.video_id,
                title_hint=resolved.title_hint,
                timeout_s=self._preview_timeout_s,
            ))

        try:
            self._status(channel, "language")
            language = resolve_output_language(request.output_language, resolved.text)
            prompt = build_prompt(request.mode, language).render(resolved.text)

            self._status(channel, "analyzing")
            call_logger = call_logger or CallLogger()

            def on_ai_retry(attempt: int, max_attempts: int, delay: float, error: Exception) -> None:
                self._status(channel, "analyzing-retry", f"Retrying AI analysis ({attempt}/{max_attempts})")

            if channel is not None:
                response = await self._ai.stream(
                    prompt, channel.text, step="extraction", signal=signal,
                    on_retry=on_ai_retry, call_logger=call_logger,
                )
            else:
                response = await self._ai.invoke(
                    prompt, step="extraction", signal=signal,
                    on_retry=on_ai_retry, call_logger=call_logger,
                )
            signal.raise_if_aborted()

            result = await self._repair.parse(
                response.content,
                mode=request.mode,
                language=language,
                word_count=resolved.word_count,
                signal=signal,
                call_logger=call_logger,
                on_status=on_status,
            )
            signal.raise_if_aborted()

            preview = await self._await_preview(preview_task)
        finally:
            if preview_task is not None and not preview_task.done():
                preview_task.cancel()

        if request.source_kind == SourceKind.VIDEO:
            video_title = preview.video_title if preview else resolved.title_hint
            thumbnail_url = preview.thumbnail_url if preview else None
        else:
            video_title, thumbnail_url = resolved.title_hint, None

        persisted = await self._writer.commit_success(
            request=request,
            key=key,
            result=result,
            content_source=resolved.content_source,
            transcript=resolved.transcript,
            video_title=video_title,
            thumbnail_url=thumbnail_url,
            calls=call_logger.records,
        )
        return ExtractionOutcome(
            request=request,
            result=result,
            cached=False,
            record=persisted.record,
            content_source=resolved.content_source,
            video_title=video_title,
            thumbnail_url=thumbnail_url,
        )

    @staticmethod
    async def _await_preview(task: asyncio.Task[VideoPreview] | None) -> VideoPreview | None:
        if task is None:
            return None
        try:
            return await task
        except Exception as e:
            logger.warning("Video preview failed: %s", e)
            return None
