# src/extraction/source_detector.py — v1
"""Source kind detection from the raw locator and an optional hint."""

from __future__ import annotations

import re

from actionextractor.core.errors import ValidationError
from actionextractor.core.models import SourceKind, extract_video_id

_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)
_YOUTUBE_HOST = re.compile(r"(?:^|[/.])(?:youtube\.com|youtu\.be)(?:[/:]|$)", re.IGNORECASE)

_HINTS: dict[str, SourceKind] = {
    "video": SourceKind.VIDEO,
    "youtube": SourceKind.VIDEO,
    "web_url": SourceKind.WEB_URL,
    "web": SourceKind.WEB_URL,
    "file_text": SourceKind.FILE_TEXT,
    "text": SourceKind.FILE_TEXT,
}


def is_youtube_url(value: str) -> bool:
    value = value.strip()
    return bool(_YOUTUBE_HOST.search(value)) and extract_video_id(value) is not None


def parse_source_hint(hint: str | None) -> SourceKind | None:
    """Map a caller-supplied hint to a SourceKind. None/empty means no hint.

    Raises:
        ValidationError: If the hint is not recognized.
    """
    if hint is None or not hint.strip():
        return None
    kind = _HINTS.get(hint.strip().lower())
    if kind is None:
        raise ValidationError(
            f"Unknown source type {hint!r}. Expected one of: {', '.join(sorted(_HINTS))}"
        )
    return kind


def detect_source_kind(locator: str, hint: str | None = None) -> SourceKind:
    """Detect the kind of source behind ``locator``.

    An explicit hint wins. Otherwise a YouTube URL is a video, any other
    http(s) URL a web page, and anything else raw text.
    """
    hinted = parse_source_hint(hint)
    if hinted is not None:
        return hinted

    trimmed = locator.strip()
    if not trimmed:
        return SourceKind.FILE_TEXT
    if is_youtube_url(trimmed):
        return SourceKind.VIDEO
    if _HTTP_URL.match(trimmed):
        return SourceKind.WEB_URL
    return SourceKind.FILE_TEXT
