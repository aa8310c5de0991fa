# src/api/models.py — v3
"""HTTP request/response bodies for the extraction API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import field_validator

from actionextractor.api.facade import build_request
from actionextractor.core.models import (
    ExtractionMode,
    ExtractionRequest,
    OutputLanguage,
    WireModel,
)
from actionextractor.extraction.document_extractor import ExtractedDocument
from actionextractor.ratelimit.models import RateLimitDecision


class ExtractRequestBody(WireModel):
    """Body of POST /api/extract and /api/extract/stream."""

    url: str | None = None
    text: str | None = None
    mode: ExtractionMode = ExtractionMode.ACTION_PLAN
    output_language: OutputLanguage = OutputLanguage.AUTO
    source_type: str | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def default_unknown_mode(cls, v: Any) -> Any:  # noqa: N805
        """Unknown modes fall back to the action plan."""
        if v is None or v not in {m.value for m in ExtractionMode}:
            return ExtractionMode.ACTION_PLAN
        return v

    @field_validator("output_language", mode="before")
    @classmethod
    def default_unknown_language(cls, v: Any) -> Any:  # noqa: N805
        if v is None or v not in {lang.value for lang in OutputLanguage}:
            return OutputLanguage.AUTO
        return v

    def to_request(self, user_id: str) -> ExtractionRequest:
        """Build the pipeline request.

        Raises:
            ValidationError: Neither ``url`` nor ``text`` carries content,
                or the source type hint is unknown.
        """
        url = (self.url or "").strip()
        hint = self.source_type
        if hint is None and not url:
            hint = "text"
        return build_request(
            url or (self.text or ""),
            user_id,
            mode=self.mode,
            output_language=self.output_language,
            source_hint=hint,
        )


class UploadBody(WireModel):
    """Body of POST /api/extract/upload: text ready to submit as ``text``."""

    text: str
    char_count: int
    source_label: str
    source_type: str

    @classmethod
    def from_document(cls, document: ExtractedDocument) -> UploadBody:
        return cls(
            text=document.text,
            char_count=document.char_count,
            source_label=document.title,
            source_type=document.document_type.value,
        )


class ErrorBody(WireModel):
    error: str
    kind: str


class RateLimitBody(WireModel):
    """Body of GET /api/rate-limit and of 429 responses."""

    error: str | None = None
    limit: int
    used: int
    remaining: int
    reset_at: datetime
    retry_after_seconds: int

    @classmethod
    def from_decision(cls, decision: RateLimitDecision, error: str | None = None) -> RateLimitBody:
        return cls(
            error=error,
            limit=decision.limit,
            used=decision.used,
            remaining=decision.remaining,
            reset_at=decision.reset_at,
            retry_after_seconds=decision.retry_after_seconds,
        )


class HealthBody(WireModel):
    status: str = "ok"
    version: str
