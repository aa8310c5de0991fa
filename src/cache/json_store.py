# src/cache/json_store.py — v2
"""JSON file-based cache store (default CACHE_BACKEND=json).

One directory per content identity under CACHE_ROOT, one JSON file per
(prompt version, model identity) pair inside it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from actionextractor.cache.base_cache_store import BaseCacheStore
from actionextractor.cache.models import CacheEntry, CacheKey

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def lookup(self, key: CacheKey) -> CacheEntry | None:
        """Retrieve the entry stored under exactly ``key``."""
        path = self._entry_path(key)
        entry = self._read(path)
        if entry is None or entry.key != key:
            return None
        entry.last_used_at = datetime.now(timezone.utc)
        self._write(path, entry)
        return entry

    async def upsert(self, entry: CacheEntry) -> None:
        """Store a cache entry."""
        path = self._entry_path(entry.key)
        existing = self._read(path)
        now = datetime.now(timezone.utc)
        stored = entry.model_copy(update={
            "created_at": existing.created_at if existing else entry.created_at,
            "updated_at": now,
            "last_used_at": now,
        })
        self._write(path, stored)

    async def find_transcript(self, content_identity: str) -> str | None:
        for entry in self._entries_for(content_identity):
            if entry.transcript and entry.transcript.strip():
                return entry.transcript
        return None

    async def find_latest(self, content_identity: str) -> CacheEntry | None:
        entries = self._entries_for(content_identity)
        return entries[0] if entries else None

    async def delete(self, key: CacheKey) -> None:
        """Remove a cache entry."""
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        entries: list[CacheEntry] = []
        if not self._root.is_dir():
            return entries
        for path in sorted(self._root.glob("*/*.json")):
            entry = self._read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    # --- Internal helpers ---

    def _identity_dir(self, content_identity: str) -> Path:
        safe = content_identity.replace("/", "_").replace("\\", "_").replace(":", "_")
        return self._root / safe

    def _entry_path(self, key: CacheKey) -> Path:
        """Return file path for a cache key."""
        return self._identity_dir(key.content_identity) / f"{key.digest}.json"

    def _entries_for(self, content_identity: str) -> list[CacheEntry]:
        """Entries for an identity, most recently updated first."""
        directory = self._identity_dir(content_identity)
        if not directory.is_dir():
            return []
        entries = [
            e for e in (self._read(p) for p in directory.glob("*.json"))
            if e is not None and e.content_identity == content_identity
        ]
        entries.sort(key=lambda e: e.updated_at, reverse=True)
        return entries

    @staticmethod
    def _read(path: Path) -> CacheEntry | None:
        if not path.exists():
            return None
        try:
            return CacheEntry(**json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.warning("Failed to read cache entry %s: %s", path, e)
            return None

    @staticmethod
    def _write(path: Path, entry: CacheEntry) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(path)
