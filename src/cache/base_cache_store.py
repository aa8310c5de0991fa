# src/cache/base_cache_store.py — v2
"""Abstract cache store interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from actionextractor.cache.models import CacheEntry, CacheKey, prompt_version_tag

logger = logging.getLogger(__name__)


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends.

    ``lookup`` is exact: an entry is returned only for the very same
    prompt version and model identity. ``find_transcript`` and
    ``find_latest`` ignore both and serve degraded fallbacks.
    """

    @abstractmethod
    async def lookup(self, key: CacheKey) -> CacheEntry | None:
        """Exact-match lookup; refreshes ``last_used_at`` on a hit."""

    @abstractmethod
    async def upsert(self, entry: CacheEntry) -> None:
        """Store an entry (last write wins, ``created_at`` kept)."""

    @abstractmethod
    async def find_transcript(self, content_identity: str) -> str | None:
        """Most recently updated non-empty transcript for an identity."""

    @abstractmethod
    async def find_latest(self, content_identity: str) -> CacheEntry | None:
        """Most recently updated entry for an identity, any version."""

    @abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Remove cache entry."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""

    async def purge_versions(self, keep_tag: str) -> int:
        """Delete entries whose prompt version tag differs from ``keep_tag``.

        Returns:
            Number of entries removed.
        """
        removed = 0
        for entry in await self.list_entries():
            if prompt_version_tag(entry.prompt_version) != keep_tag:
                await self.delete(entry.key)
                removed += 1
        logger.info("Purged %d cache entries not at prompt version %s", removed, keep_tag)
        return removed

    def close(self) -> None:
        """Release backend resources. No-op by default."""
