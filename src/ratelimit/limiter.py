# src/ratelimit/limiter.py — v1
"""Per-user fixed-window quota gate in front of paid AI calls."""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable

from actionextractor.core.errors import RateLimitedError
from actionextractor.ratelimit.base_store import BaseRateLimitStore
from actionextractor.ratelimit.models import RateLimitDecision, RateLimitWindow

logger = logging.getLogger(__name__)


class RateLimiter:
    """Evaluates and consumes per-user extraction quota."""

    def __init__(
        self,
        store: BaseRateLimitStore,
        limit: int = 12,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    async def consume(self, user_id: str) -> RateLimitDecision:
        """Take one unit of quota for ``user_id`` if available."""
        now = self._clock()
        allowed, window = await self._store.consume(
            user_id, self._limit, self._window_seconds, now,
        )
        decision = self._decide(allowed, window, now)
        if not allowed:
            logger.info(
                "Rate limit reached for %s (%d/%d, retry in %ds)",
                user_id, decision.used, decision.limit, decision.retry_after_seconds,
            )
        return decision

    async def snapshot(self, user_id: str) -> RateLimitDecision:
        """Current state for ``user_id`` without consuming."""
        now = self._clock()
        window = await self._store.get(user_id)
        if window is None or window.reset_at <= now:
            window = RateLimitWindow(used=0, reset_at=now + self._window_seconds)
        return self._decide(window.used < self._limit, window, now)

    async def enforce(self, user_id: str) -> RateLimitDecision:
        """Consume or raise.

        Raises:
            RateLimitedError: When the user's window is exhausted.
        """
        decision = await self.consume(user_id)
        if not decision.allowed:
            raise RateLimitedError(decision)
        return decision

    def close(self) -> None:
        self._store.close()

    def _decide(self, allowed: bool, window: RateLimitWindow, now: float) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            limit=self._limit,
            used=window.used,
            remaining=max(self._limit - window.used, 0),
            reset_at=datetime.fromtimestamp(window.reset_at, tz=timezone.utc),
            retry_after_seconds=max(1, math.ceil(window.reset_at - now)),
        )
