# src/ratelimit/models.py — v1
"""Rate-limit domain models: RateLimitWindow, RateLimitDecision."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class RateLimitWindow(BaseModel):
    """Stored per-user counter for the current fixed window."""

    used: int = 0
    reset_at: float = 0.0  # epoch seconds


class RateLimitDecision(BaseModel):
    """Outcome of a consume (or snapshot) for one user."""

    allowed: bool
    limit: int
    used: int
    remaining: int
    reset_at: datetime
    retry_after_seconds: int

    def headers(self) -> dict[str, str]:
        """X-RateLimit-* response headers (plus Retry-After when denied)."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at.timestamp())),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers
