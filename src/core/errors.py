# src/core/errors.py — v2
"""Error taxonomy shared by the pipeline and the HTTP surface.

Every error raised out of the pipeline derives from PipelineError and
carries an ErrorKind that maps to an HTTP status.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from actionextractor.ratelimit.models import RateLimitDecision


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    PAYLOAD_TOO_LARGE = "payload-too-large"
    UNAUTHENTICATED = "unauthenticated"
    RATE_LIMITED = "rate-limited"
    SOURCE_UNAVAILABLE = "source-unavailable"
    AI_AUTH = "ai-auth"
    AI_RATE_LIMITED = "ai-rate-limited"
    AI_UPSTREAM = "ai-upstream"
    INVALID_MODEL_OUTPUT = "invalid-model-output"
    INTERNAL = "internal"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.SOURCE_UNAVAILABLE: 422,
    ErrorKind.AI_AUTH: 503,
    ErrorKind.AI_RATE_LIMITED: 429,
    ErrorKind.AI_UPSTREAM: 502,
    ErrorKind.INVALID_MODEL_OUTPUT: 502,
    ErrorKind.INTERNAL: 500,
}

INTERNAL_ERROR_MESSAGE = "Unexpected error while processing the extraction."


class PipelineError(Exception):
    """Base class for classified pipeline failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        self.message = message
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return self.kind.http_status


class ValidationError(PipelineError):
    kind = ErrorKind.VALIDATION


class DocumentTooLargeError(PipelineError):
    """Uploaded document exceeds the size limit for its format."""

    kind = ErrorKind.PAYLOAD_TOO_LARGE


class UnauthenticatedError(PipelineError):
    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, message: str = "Authentication required."):
        super().__init__(message)


class RateLimitedError(PipelineError):
    """Caller exhausted its extraction quota for the current window."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, decision: RateLimitDecision, message: str | None = None):
        self.decision = decision
        super().__init__(
            message
            or f"Rate limit reached ({decision.limit} per window). "
            f"Try again in {decision.retry_after_seconds}s."
        )


class SourceUnavailableError(PipelineError):
    """No usable text could be obtained for the source.

    ``reason`` is one of ``no-content``, ``fetch-failed`` or
    ``unsupported-source``.
    """

    kind = ErrorKind.SOURCE_UNAVAILABLE

    def __init__(self, message: str, reason: str = "no-content"):
        self.reason = reason
        super().__init__(message)


class AIProviderError(PipelineError):
    """AI call failed after the retry ceiling or on a fatal error."""

    def __init__(
        self,
        message: str,
        classification: str,
        status: int,
        retryable: bool = False,
    ):
        self.classification = classification
        self.status = status
        self.retryable = retryable
        kind = _AI_KIND_BY_CLASSIFICATION.get(classification, ErrorKind.AI_UPSTREAM)
        super().__init__(message, kind=kind)

    @property
    def http_status(self) -> int:
        # network failures surface as 503 while sharing the upstream kind
        return self.status


_AI_KIND_BY_CLASSIFICATION: dict[str, ErrorKind] = {
    "auth": ErrorKind.AI_AUTH,
    "rate-limited": ErrorKind.AI_RATE_LIMITED,
    "upstream-5xx": ErrorKind.AI_UPSTREAM,
    "network": ErrorKind.AI_UPSTREAM,
    "invalid-request": ErrorKind.AI_UPSTREAM,
    "unknown": ErrorKind.AI_UPSTREAM,
}


class InvalidModelOutputError(PipelineError):
    """Model output stayed unparseable after the repair cascade."""

    kind = ErrorKind.INVALID_MODEL_OUTPUT
