# src/ratelimit/memory_store.py — v1
"""In-process rate-limit store (RATE_LIMIT_BACKEND=memory)."""

from __future__ import annotations

import asyncio

from actionextractor.ratelimit.base_store import BaseRateLimitStore, apply_consume
from actionextractor.ratelimit.models import RateLimitWindow


class MemoryRateLimitStore(BaseRateLimitStore):
    """Dict of windows guarded by an asyncio lock. Single process only."""

    def __init__(self) -> None:
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = asyncio.Lock()

    async def consume(
        self, user_id: str, limit: int, window_seconds: float, now: float,
    ) -> tuple[bool, RateLimitWindow]:
        async with self._lock:
            allowed, window = apply_consume(self._windows.get(user_id), limit, window_seconds, now)
            self._windows[user_id] = window
            return allowed, window

    async def get(self, user_id: str) -> RateLimitWindow | None:
        return self._windows.get(user_id)
