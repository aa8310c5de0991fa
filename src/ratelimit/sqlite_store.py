# src/ratelimit/sqlite_store.py — v1
"""SQLite rate-limit store (RATE_LIMIT_BACKEND=sqlite).

The read-modify-write runs inside ``BEGIN IMMEDIATE`` so concurrent
processes sharing the file serialize on the write lock.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from actionextractor.ratelimit.base_store import BaseRateLimitStore, apply_consume
from actionextractor.ratelimit.models import RateLimitWindow

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS rate_limit_windows (
    user_id TEXT PRIMARY KEY,
    used INTEGER NOT NULL,
    reset_at REAL NOT NULL
);
"""


class SqliteRateLimitStore(BaseRateLimitStore):
    """SQLite-backed fixed-window counters."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(self._db_path), isolation_level=None, check_same_thread=False, timeout=10.0,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def consume(
        self, user_id: str, limit: int, window_seconds: float, now: float,
    ) -> tuple[bool, RateLimitWindow]:
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            row = self._conn.execute(
                "SELECT used, reset_at FROM rate_limit_windows WHERE user_id = ?", (user_id,),
            ).fetchone()
            current = RateLimitWindow(used=row[0], reset_at=row[1]) if row else None
            allowed, window = apply_consume(current, limit, window_seconds, now)
            self._conn.execute(
                """INSERT INTO rate_limit_windows (user_id, used, reset_at) VALUES (?, ?, ?)
                   ON CONFLICT (user_id) DO UPDATE SET used = excluded.used,
                                                       reset_at = excluded.reset_at""",
                (user_id, window.used, window.reset_at),
            )
            self._conn.execute("COMMIT")
        except sqlite3.Error:
            self._conn.execute("ROLLBACK")
            raise
        return allowed, window

    async def get(self, user_id: str) -> RateLimitWindow | None:
        row = self._conn.execute(
            "SELECT used, reset_at FROM rate_limit_windows WHERE user_id = ?", (user_id,),
        ).fetchone()
        return RateLimitWindow(used=row[0], reset_at=row[1]) if row else None

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
