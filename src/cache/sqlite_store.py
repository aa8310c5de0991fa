# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3. Better than JSON files when many sources are cached.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from actionextractor.cache.base_cache_store import BaseCacheStore
from actionextractor.cache.models import CacheEntry, CacheKey

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    content_identity TEXT NOT NULL,
    prompt_version TEXT NOT NULL,
    model_identity TEXT NOT NULL,
    data TEXT NOT NULL,
    has_transcript INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_used_at TEXT NOT NULL,
    PRIMARY KEY (content_identity, prompt_version, model_identity)
);
CREATE INDEX IF NOT EXISTS idx_cache_identity_updated
    ON cache_entries(content_identity, updated_at);
"""

_KEY_WHERE = "content_identity = ? AND prompt_version = ? AND model_identity = ?"


def _key_params(key: CacheKey) -> tuple[str, str, str]:
    return (key.content_identity, key.prompt_version, key.model_identity)


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def lookup(self, key: CacheKey) -> CacheEntry | None:
        """Retrieve the entry stored under exactly ``key``."""
        row = self._conn.execute(
            f"SELECT data FROM cache_entries WHERE {_KEY_WHERE}", _key_params(key),
        ).fetchone()
        if row is None:
            return None
        entry = self._decode(row[0])
        if entry is None:
            return None

        now = datetime.now(timezone.utc)
        entry.last_used_at = now
        self._conn.execute(
            f"UPDATE cache_entries SET last_used_at = ?, data = ? WHERE {_KEY_WHERE}",
            (now.isoformat(), entry.model_dump_json(), *_key_params(key)),
        )
        self._conn.commit()
        return entry

    async def upsert(self, entry: CacheEntry) -> None:
        """Store a cache entry (upsert, ``created_at`` of the first write kept)."""
        row = self._conn.execute(
            f"SELECT created_at FROM cache_entries WHERE {_KEY_WHERE}", _key_params(entry.key),
        ).fetchone()
        now = datetime.now(timezone.utc)
        created_at = datetime.fromisoformat(row[0]) if row else entry.created_at
        stored = entry.model_copy(update={
            "created_at": created_at, "updated_at": now, "last_used_at": now,
        })
        self._conn.execute(
            """INSERT INTO cache_entries
               (content_identity, prompt_version, model_identity, data,
                has_transcript, created_at, updated_at, last_used_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT (content_identity, prompt_version, model_identity)
               DO UPDATE SET data = excluded.data,
                             has_transcript = excluded.has_transcript,
                             updated_at = excluded.updated_at,
                             last_used_at = excluded.last_used_at""",
            (
                *_key_params(entry.key),
                stored.model_dump_json(),
                1 if stored.transcript and stored.transcript.strip() else 0,
                stored.created_at.isoformat(),
                stored.updated_at.isoformat(),
                stored.last_used_at.isoformat(),
            ),
        )
        self._conn.commit()

    async def find_transcript(self, content_identity: str) -> str | None:
        row = self._conn.execute(
            """SELECT data FROM cache_entries
               WHERE content_identity = ? AND has_transcript = 1
               ORDER BY updated_at DESC LIMIT 1""",
            (content_identity,),
        ).fetchone()
        if row is None:
            return None
        entry = self._decode(row[0])
        return entry.transcript if entry else None

    async def find_latest(self, content_identity: str) -> CacheEntry | None:
        row = self._conn.execute(
            """SELECT data FROM cache_entries WHERE content_identity = ?
               ORDER BY updated_at DESC LIMIT 1""",
            (content_identity,),
        ).fetchone()
        return self._decode(row[0]) if row else None

    async def delete(self, key: CacheKey) -> None:
        """Remove a cache entry."""
        self._conn.execute(f"DELETE FROM cache_entries WHERE {_KEY_WHERE}", _key_params(key))
        self._conn.commit()

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        cursor = self._conn.execute("SELECT data FROM cache_entries ORDER BY updated_at DESC")
        entries: list[CacheEntry] = []
        for row in cursor.fetchall():
            entry = self._decode(row[0])
            if entry is not None:
                entries.append(entry)
        return entries

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _decode(data: str) -> CacheEntry | None:
        try:
            return CacheEntry(**json.loads(data))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to deserialize cache entry: %s", e)
            return None
