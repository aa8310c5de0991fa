# src/ratelimit/ratelimit_factory.py — v2
"""Factory for rate-limit store and limiter instantiation."""

from __future__ import annotations

from actionextractor.config.settings import Settings
from actionextractor.ratelimit.base_store import BaseRateLimitStore
from actionextractor.ratelimit.limiter import RateLimiter


def create_rate_limit_store(settings: Settings | None = None) -> BaseRateLimitStore:
    """Instantiate the configured rate-limit backend.

    Args:
        settings: Application settings. Defaults to the memory backend.
    """
    if settings is None or settings.rate_limit_backend == "memory":
        from actionextractor.ratelimit.memory_store import MemoryRateLimitStore

        return MemoryRateLimitStore()

    backend = settings.rate_limit_backend

    if backend == "sqlite":
        from actionextractor.ratelimit.sqlite_store import SqliteRateLimitStore

        return SqliteRateLimitStore(db_path=settings.store_path)

    if backend == "redis":
        from actionextractor.ratelimit.redis_store import RedisRateLimitStore

        if not settings.rate_limit_redis_url:
            raise ValueError("RATE_LIMIT_REDIS_URL must be set when RATE_LIMIT_BACKEND=redis")
        return RedisRateLimitStore(redis_url=settings.rate_limit_redis_url)

    raise ValueError(f"Unsupported rate limit backend: {backend!r}")


def create_rate_limiter(settings: Settings) -> RateLimiter:
    return RateLimiter(
        store=create_rate_limit_store(settings),
        limit=settings.rate_limit_per_hour,
        window_seconds=settings.rate_limit_window_seconds,
    )
