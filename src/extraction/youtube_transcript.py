# src/extraction/youtube_transcript.py — v2
"""YouTube caption fetcher built on youtube-transcript-api.

The library is synchronous; calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging

from actionextractor.extraction.base_transcript_fetcher import (
    BaseTranscriptFetcher,
    TranscriptError,
)

logger = logging.getLogger(__name__)

MSG_THROTTLED = (
    "YouTube is temporarily throttling transcript requests. "
    "Wait 2-5 minutes and try again."
)
MSG_UNAVAILABLE = (
    "The video is not available (private, deleted or restricted). "
    "Check the link and make sure the video is public."
)
MSG_NO_CAPTIONS = (
    "This video has no captions available. "
    "Try a video with manual or automatic captions."
)
MSG_GENERIC = (
    "Could not fetch the transcript after several automatic attempts. "
    "Check that the video is public and has captions, then retry in a few minutes."
)

_THROTTLE_NAMES = ("toomanyrequests", "requestblocked", "ipblocked")


class EmptyTranscriptError(Exception):
    """Captions exist but contain no text."""


def classify_transcript_error(error: Exception) -> TranscriptError:
    """Map a youtube-transcript-api (or transport) failure to a TranscriptError."""
    if isinstance(error, TranscriptError):
        return error

    from youtube_transcript_api import (
        NoTranscriptFound,
        TranscriptsDisabled,
        VideoUnavailable,
    )

    name = type(error).__name__.lower()
    if any(marker in name for marker in _THROTTLE_NAMES):
        return TranscriptError(MSG_THROTTLED, status=429, retryable=True, cause=error)
    if isinstance(error, VideoUnavailable):
        return TranscriptError(MSG_UNAVAILABLE, status=404, retryable=False, cause=error)
    if isinstance(error, (TranscriptsDisabled, NoTranscriptFound, EmptyTranscriptError)):
        return TranscriptError(MSG_NO_CAPTIONS, status=422, retryable=False, cause=error)
    return TranscriptError(MSG_GENERIC, status=502, retryable=True, cause=error)


class YouTubeTranscriptFetcher(BaseTranscriptFetcher):
    """Fetches captions through youtube-transcript-api."""

    def __init__(self, api: object | None = None) -> None:
        self._api = api

    def _get_api(self):
        if self._api is None:
            from youtube_transcript_api import YouTubeTranscriptApi

            self._api = YouTubeTranscriptApi()
        return self._api

    def _fetch_sync(self, video_id: str, languages: list[str]) -> str:
        from youtube_transcript_api import NoTranscriptFound

        api = self._get_api()
        try:
            fetched = api.fetch(video_id, languages=languages)
        except NoTranscriptFound:
            fetched = self._fetch_any_track(api, video_id, languages)
        text = " ".join(
            snippet.text.replace("\n", " ").strip()
            for snippet in fetched
            if snippet.text and snippet.text.strip()
        )
        if not text.strip():
            raise EmptyTranscriptError(f"Empty transcript for {video_id}")
        return text

    @staticmethod
    def _fetch_any_track(api, video_id: str, languages: list[str]):
        """First listed caption track, whatever its language.

        Raises:
            EmptyTranscriptError: If the video lists no track at all.
        """
        for transcript in api.list(video_id):
            logger.info(
                "No %s captions for %s; using the %s track",
                "/".join(languages), video_id, getattr(transcript, "language_code", "?"),
            )
            return transcript.fetch()
        raise EmptyTranscriptError(f"No caption tracks for {video_id}")

    async def fetch(self, video_id: str, languages: list[str]) -> str:
        try:
            text = await asyncio.to_thread(self._fetch_sync, video_id, languages)
        except Exception as e:
            classified = classify_transcript_error(e)
            logger.info(
                "Transcript fetch for %s failed: %s (status=%d, retryable=%s)",
                video_id, type(e).__name__, classified.status, classified.retryable,
            )
            raise classified from e
        logger.debug("Fetched transcript for %s (%d chars)", video_id, len(text))
        return text


def is_retryable_transcript_error(error: BaseException) -> bool:
    if isinstance(error, TranscriptError):
        return error.retryable
    return True
