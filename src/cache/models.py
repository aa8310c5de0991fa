# src/cache/models.py — v2
"""Cache domain models: CacheKey, CacheEntry."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from actionextractor.core.models import StructuredResult


def build_prompt_version(tag: str, mode: str, language: str) -> str:
    """Prompt version stored in cache keys: ``<tag>:<mode>:<language>``."""
    return f"{tag}:{mode}:{language}"


def prompt_version_tag(prompt_version: str) -> str:
    """Configured tag part of a stored prompt version."""
    return prompt_version.split(":", 1)[0]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheKey(BaseModel):
    """Exact address of a cached result."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    content_identity: str
    prompt_version: str
    model_identity: str

    @property
    def digest(self) -> str:
        """Filesystem-safe hash of the version/model pair."""
        raw = f"{self.prompt_version}\x00{self.model_identity}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


class CacheEntry(BaseModel):
    """Structured result cached for one (identity, prompt version, model)."""

    model_config = ConfigDict(protected_namespaces=())

    content_identity: str
    prompt_version: str
    model_identity: str
    result: StructuredResult
    transcript: str | None = None
    video_title: str | None = None
    thumbnail_url: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    last_used_at: datetime = Field(default_factory=_utcnow)

    @property
    def key(self) -> CacheKey:
        return CacheKey(
            content_identity=self.content_identity,
            prompt_version=self.prompt_version,
            model_identity=self.model_identity,
        )
