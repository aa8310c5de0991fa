# src/extraction/source_resolver.py — v1
"""Source resolution: request → normalized text for the prompt.

Each source kind has an ordered list of strategies. A strategy returns
ResolvedContent or None ("try the next one"); the first content wins.
Videos fall back from the cached transcript to a live fetch and then to
text rebuilt from the latest cached result for the same identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from actionextractor.cache.base_cache_store import BaseCacheStore
from actionextractor.core.cancellation import AbortSignal
from actionextractor.core.errors import SourceUnavailableError
from actionextractor.core.models import (
    ContentSource,
    ExtractionRequest,
    ResolvedContent,
    SourceKind,
    StructuredResult,
)
from actionextractor.core.reading_time import count_words
from actionextractor.extraction.base_transcript_fetcher import (
    BaseTranscriptFetcher,
    TranscriptError,
)
from actionextractor.extraction.web_extractor import WebPageFetcher
from actionextractor.extraction.youtube_transcript import MSG_GENERIC, classify_transcript_error
from actionextractor.llm.retry import RetryExhausted, RetryPolicy, with_retry

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "[Content truncated]"

StatusCallback = Callable[[str, str], Awaitable[None] | None]


def truncate_for_ai(text: str, max_chars: int) -> tuple[str, bool]:
    """Cut ``text`` to ``max_chars`` at a whitespace boundary and mark it.

    Returns:
        (text, truncated)
    """
    trimmed = text.strip()
    if len(trimmed) <= max_chars:
        return trimmed, False
    head = trimmed[:max_chars]
    boundary = max(head.rfind(" "), head.rfind("\n"), head.rfind("\t"))
    if boundary > 0:
        head = head[:boundary]
    return f"{head.rstrip()}\n{TRUNCATION_MARKER}", True


def transcript_from_result(result: StructuredResult) -> str:
    """Rebuild transcript-like text from a cached structured result."""
    lines: list[str] = []
    if result.objective:
        lines.append(result.objective)
    for phase in result.phases:
        lines.append(phase.title)
        lines.extend(phase.items)
    if result.pro_tip:
        lines.append(result.pro_tip)
    return "\n".join(line.strip() for line in lines if line and line.strip())


@dataclass
class _ResolveState:
    """Per-call scratch space shared by a source's strategies."""

    request: ExtractionRequest
    signal: AbortSignal | None
    on_status: StatusCallback | None
    last_failure: TranscriptError | None = None


Strategy = Callable[[_ResolveState], Awaitable[ResolvedContent | None]]


class SourceResolver:
    """Resolves an ExtractionRequest into ResolvedContent."""

    def __init__(
        self,
        cache: BaseCacheStore,
        transcript_fetcher: BaseTranscriptFetcher,
        web_fetcher: WebPageFetcher,
        transcript_policy: RetryPolicy,
        transcript_languages: list[str] | None = None,
        max_ai_chars: int = 50_000,
    ) -> None:
        self._cache = cache
        self._transcripts = transcript_fetcher
        self._web = web_fetcher
        self._transcript_policy = transcript_policy
        self._languages = transcript_languages or ["es", "en"]
        self._max_ai_chars = max_ai_chars
        self._strategies: dict[SourceKind, list[Strategy]] = {
            SourceKind.VIDEO: [
                self._cached_transcript,
                self._live_transcript,
                self._stale_result,
            ],
            SourceKind.WEB_URL: [self._web_page],
            SourceKind.FILE_TEXT: [self._raw_text],
        }

    async def resolve(
        self,
        request: ExtractionRequest,
        signal: AbortSignal | None = None,
        on_status: StatusCallback | None = None,
    ) -> ResolvedContent:
        """Run the strategies for the request's source kind in order.

        Args:
            request: What to resolve.
            signal: Abort signal for transcript retries.
            on_status: Called as ``on_status(step, message)`` for
                ``transcript-retry`` progress.

        Raises:
            SourceUnavailableError: When every strategy came up empty.
            AbortedError: If the signal fires.
        """
        strategies = self._strategies.get(request.source_kind)
        if not strategies:
            raise SourceUnavailableError(
                f"Unsupported source kind: {request.source_kind}", reason="unsupported-source",
            )

        state = _ResolveState(request=request, signal=signal, on_status=on_status)
        for strategy in strategies:
            resolved = await strategy(state)
            if resolved is not None:
                return self._finalize(resolved)

        message = state.last_failure.message if state.last_failure else MSG_GENERIC
        raise SourceUnavailableError(message, reason="no-content")

    def _finalize(self, resolved: ResolvedContent) -> ResolvedContent:
        text, truncated = truncate_for_ai(resolved.text, self._max_ai_chars)
        if truncated:
            logger.info(
                "Content truncated from %d to %d chars", len(resolved.text), self._max_ai_chars,
            )
        return resolved.model_copy(update={
            "text": text,
            "truncated": truncated,
            "word_count": count_words(resolved.text),
        })

    # --- Video strategies ---

    async def _cached_transcript(self, state: _ResolveState) -> ResolvedContent | None:
        transcript = await self._cache.find_transcript(state.request.content_identity)
        if not transcript:
            return None
        logger.info("Using cached transcript for %s", state.request.content_identity)
        return ResolvedContent(
            text=transcript,
            content_source=ContentSource.CACHE_TRANSCRIPT,
            transcript=transcript,
        )

    async def _live_transcript(self, state: _ResolveState) -> ResolvedContent | None:
        video_id = state.request.video_id
        if not video_id:
            raise SourceUnavailableError(
                "Could not find a video id in the URL.", reason="unsupported-source",
            )

        async def on_retry(attempt: int, max_attempts: int, delay: float, error: Exception) -> None:
            if state.on_status is None:
                return
            result = state.on_status(
                "transcript-retry",
                f"Retrying transcript ({attempt}/{max_attempts})",
            )
            if result is not None:
                await result

        try:
            transcript = await with_retry(
                self._transcripts.fetch,
                video_id,
                self._languages,
                policy=self._transcript_policy,
                operation="transcript",
                signal=state.signal,
                on_retry=on_retry,
            )
        except RetryExhausted as e:
            failure = classify_transcript_error(e.last_error)
            state.last_failure = failure
            logger.warning(
                "Transcript unavailable for %s after %d attempt(s): status=%d",
                video_id, e.attempts, failure.status,
            )
            return None

        return ResolvedContent(
            text=transcript,
            content_source=ContentSource.FRESHLY_FETCHED,
            transcript=transcript,
        )

    async def _stale_result(self, state: _ResolveState) -> ResolvedContent | None:
        failure = state.last_failure
        # only exhausted retries and missing captions fall back; unavailable videos do not
        if failure is not None and not (failure.retryable or failure.status == 422):
            return None
        entry = await self._cache.find_latest(state.request.content_identity)
        if entry is None:
            return None
        text = transcript_from_result(entry.result)
        if not text:
            return None
        logger.info(
            "Rebuilt degraded transcript from cached result (%s) for %s",
            entry.prompt_version, state.request.content_identity,
        )
        return ResolvedContent(
            text=text,
            title_hint=entry.video_title,
            content_source=ContentSource.CACHE_STALE_RESULT,
        )

    # --- Web and text strategies ---

    async def _web_page(self, state: _ResolveState) -> ResolvedContent | None:
        page = await self._web.fetch(state.request.locator.strip())
        return ResolvedContent(text=page.text, title_hint=page.title)

    async def _raw_text(self, state: _ResolveState) -> ResolvedContent | None:
        text = state.request.locator.strip()
        if not text:
            raise SourceUnavailableError("The submitted text is empty.", reason="no-content")
        return ResolvedContent(text=text)
