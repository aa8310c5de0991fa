# src/extraction/base_transcript_fetcher.py — v1
"""Abstract transcript fetcher interface and its classified failure."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TranscriptError(Exception):
    """Classified transcript failure with a caller-facing message.

    Attributes:
        status: HTTP-like status (429 throttled, 404 unavailable,
            422 no captions, 502 anything else).
        retryable: Whether another attempt may succeed.
    """

    def __init__(self, message: str, status: int, retryable: bool, cause: Exception | None = None):
        self.message = message
        self.status = status
        self.retryable = retryable
        self.cause = cause
        super().__init__(message)


class BaseTranscriptFetcher(ABC):
    """Fetches the caption text of a video."""

    @abstractmethod
    async def fetch(self, video_id: str, languages: list[str]) -> str:
        """Return the transcript text.

        Raises:
            TranscriptError: Classified failure (including empty captions).
        """
