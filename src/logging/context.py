# src/logging/context.py — v2
"""Contextual logging support — attach request_id, user_id, content identity
and pipeline step to log records.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per pipeline run.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_user_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
_content_identity: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "content_identity", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    user_id: str | None = None
    content_identity: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        user_id=_user_id.get(),
        content_identity=_content_identity.get(),
        step=_step.get(),
    )


def set_request_context(
    request_id: str, user_id: str | None = None, content_identity: str | None = None,
) -> None:
    """Set run-level context (called once per pipeline run)."""
    _request_id.set(request_id)
    _user_id.set(user_id)
    _content_identity.set(content_identity)


def set_step_context(step: str | None) -> None:
    """Set the current pipeline step."""
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _user_id.set(None)
    _content_identity.set(None)
    _step.set(None)
