# src/ratelimit/base_store.py — v1
"""Abstract rate-limit counter store.

Implementations must apply ``consume`` atomically: read the window,
reset it when expired, increment when under the limit, write it back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from actionextractor.ratelimit.models import RateLimitWindow


def apply_consume(
    window: RateLimitWindow | None, limit: int, window_seconds: float, now: float,
) -> tuple[bool, RateLimitWindow]:
    """Pure fixed-window transition shared by in-process stores."""
    if window is None or window.reset_at <= now:
        window = RateLimitWindow(used=0, reset_at=now + window_seconds)
    if window.used >= limit:
        return False, window
    return True, RateLimitWindow(used=window.used + 1, reset_at=window.reset_at)


class BaseRateLimitStore(ABC):
    """Unified interface for rate-limit counter backends."""

    @abstractmethod
    async def consume(
        self, user_id: str, limit: int, window_seconds: float, now: float,
    ) -> tuple[bool, RateLimitWindow]:
        """Atomically take one unit from the user's window.

        Returns:
            (allowed, window after the operation)
        """

    @abstractmethod
    async def get(self, user_id: str) -> RateLimitWindow | None:
        """Current stored window, if any (may be expired)."""

    def close(self) -> None:
        """Release backend resources. No-op by default."""
