# src/ratelimit/redis_store.py — v1
"""Redis rate-limit store (RATE_LIMIT_BACKEND=redis).

Requires 'redis' package. The fixed-window transition runs server-side
in a Lua script, so every instance sharing the Redis sees one counter.
"""

from __future__ import annotations

import logging

from actionextractor.ratelimit.base_store import BaseRateLimitStore
from actionextractor.ratelimit.models import RateLimitWindow

logger = logging.getLogger(__name__)

_KEY_PREFIX = "actionextractor:ratelimit:"

_CONSUME_SCRIPT = """
local used = tonumber(redis.call('HGET', KEYS[1], 'used') or '0')
local reset_at = tonumber(redis.call('HGET', KEYS[1], 'reset_at') or '0')
local limit = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local now_ms = tonumber(ARGV[3])
if reset_at <= now_ms then
  used = 0
  reset_at = now_ms + window_ms
end
local allowed = 0
if used < limit then
  used = used + 1
  allowed = 1
end
redis.call('HSET', KEYS[1], 'used', used, 'reset_at', reset_at)
redis.call('PEXPIREAT', KEYS[1], reset_at)
return {allowed, used, reset_at}
"""


class RedisRateLimitStore(BaseRateLimitStore):
    """Redis-backed counters for multi-instance deployments."""

    def __init__(self, redis_url: str, client: object | None = None) -> None:
        if client is None:
            import redis.asyncio as redis

            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client
        self._script = self._client.register_script(_CONSUME_SCRIPT)

    async def consume(
        self, user_id: str, limit: int, window_seconds: float, now: float,
    ) -> tuple[bool, RateLimitWindow]:
        allowed, used, reset_ms = await self._script(
            keys=[f"{_KEY_PREFIX}{user_id}"],
            args=[limit, int(window_seconds * 1000), int(now * 1000)],
        )
        return bool(int(allowed)), RateLimitWindow(used=int(used), reset_at=int(reset_ms) / 1000)

    async def get(self, user_id: str) -> RateLimitWindow | None:
        data = await self._client.hgetall(f"{_KEY_PREFIX}{user_id}")
        if not data:
            return None
        return RateLimitWindow(used=int(data["used"]), reset_at=int(float(data["reset_at"])) / 1000)
