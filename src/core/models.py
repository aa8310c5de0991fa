# src/core/models.py — v3
"""Shared Pydantic domain models used across modules.

No module redefines these types: request, resolved content, structured
result and its parts all come from core.models.
"""

from __future__ import annotations

import hashlib
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# === ENUMS ===


class SourceKind(str, Enum):
    """Kind of content source submitted by the caller."""

    VIDEO = "video"
    WEB_URL = "web_url"
    FILE_TEXT = "file_text"


class ExtractionMode(str, Enum):
    """Output style requested from the model."""

    ACTION_PLAN = "action_plan"
    EXECUTIVE_SUMMARY = "executive_summary"
    BUSINESS_IDEAS = "business_ideas"
    KEY_QUOTES = "key_quotes"
    CONCEPT_MAP = "concept_map"


class OutputLanguage(str, Enum):
    AUTO = "auto"
    ES = "es"
    EN = "en"


class ContentSource(str, Enum):
    """Where the text handed to the model came from."""

    FRESHLY_FETCHED = "freshly-fetched"
    CACHE_TRANSCRIPT = "cache-transcript"
    CACHE_STALE_RESULT = "cache-stale-result"


# === WIRE BASE ===


class WireModel(BaseModel):
    """Base for models serialized to API clients (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# === REQUEST ===

_YOUTUBE_ID_PATTERNS = (
    re.compile(r"[?&]v=([A-Za-z0-9_-]+)"),
    re.compile(r"youtu\.be/([A-Za-z0-9_-]+)"),
    re.compile(r"/embed/([A-Za-z0-9_-]+)"),
    re.compile(r"/v/([A-Za-z0-9_-]+)"),
    re.compile(r"/shorts/([A-Za-z0-9_-]+)"),
)


def extract_video_id(url: str) -> str | None:
    """Return the YouTube video id embedded in ``url``, if any."""
    for pattern in _YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def normalize_url(url: str) -> str:
    """Lowercase scheme/host, drop the fragment and a trailing slash."""
    url = url.strip()
    url = url.split("#", 1)[0]
    match = re.match(r"^([A-Za-z][A-Za-z0-9+.-]*://)([^/?]+)(.*)$", url)
    if match:
        scheme, host, rest = match.groups()
        url = scheme.lower() + host.lower() + rest
    if url.endswith("/") and url.count("/") > 3:
        url = url.rstrip("/")
    return url


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:32]


class ExtractionRequest(BaseModel):
    """One extraction as submitted by a caller. Never persisted as-is."""

    source_kind: SourceKind
    locator: str
    mode: ExtractionMode = ExtractionMode.ACTION_PLAN
    output_language: OutputLanguage = OutputLanguage.AUTO
    user_id: str

    @property
    def video_id(self) -> str | None:
        if self.source_kind != SourceKind.VIDEO:
            return None
        return extract_video_id(self.locator)

    @property
    def url(self) -> str | None:
        """Locator when it is a URL, None for raw text."""
        if self.source_kind == SourceKind.FILE_TEXT:
            return None
        return self.locator.strip()

    @property
    def content_identity(self) -> str:
        """Stable key for the underlying source.

        Video sources use the video id, web pages a hash of the normalized
        URL and raw text a hash of the trimmed text.
        """
        if self.source_kind == SourceKind.VIDEO:
            video_id = self.video_id
            if video_id:
                return video_id
            return "url:" + _digest(normalize_url(self.locator))
        if self.source_kind == SourceKind.WEB_URL:
            return "url:" + _digest(normalize_url(self.locator))
        return "text:" + _digest(self.locator.strip())


# === RESOLVED CONTENT ===


class ResolvedContent(BaseModel):
    """Normalized text ready for prompt construction."""

    text: str
    title_hint: str | None = None
    content_source: ContentSource = ContentSource.FRESHLY_FETCHED
    transcript: str | None = None
    truncated: bool = False
    word_count: int = 0


# === STRUCTURED RESULT ===


class Phase(WireModel):
    """One ordered section of a structured result."""

    id: int
    title: str
    items: list[str] = Field(default_factory=list)


class ResultMetadata(WireModel):
    reading_time: str = "3 min"
    difficulty: str = "Media"
    original_time: str = "0m"
    saved_time: str = "0m"


class StructuredResult(WireModel):
    """Typed breakdown produced by the model for one source."""

    mode: ExtractionMode = ExtractionMode.ACTION_PLAN
    language: str = "es"
    objective: str = ""
    phases: list[Phase] = Field(default_factory=list)
    pro_tip: str = ""
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)


# Easy / medium / hard, per output language
DIFFICULTY_LABELS: dict[str, tuple[str, str, str]] = {
    "es": ("Fácil", "Media", "Difícil"),
    "en": ("Easy", "Medium", "Hard"),
}
