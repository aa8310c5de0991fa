# src/storage/sqlite_store.py — v1
"""SQLite implementation of the persistence contract.

Uses stdlib sqlite3. Order numbers are assigned inside ``BEGIN
IMMEDIATE`` so two concurrent writes for one user never share a number.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from actionextractor.core.models import StructuredResult
from actionextractor.storage.base_store import BaseExtractionStore
from actionextractor.storage.models import ExtractionRecord, NewExtraction, UsageRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS extractions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    order_number INTEGER NOT NULL,
    url TEXT,
    source_kind TEXT NOT NULL,
    video_id TEXT,
    video_title TEXT,
    thumbnail_url TEXT,
    content_source TEXT NOT NULL,
    result TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (user_id, order_number)
);
CREATE TABLE IF NOT EXISTS usage_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    extraction_id TEXT,
    user_id TEXT NOT NULL,
    step TEXT NOT NULL,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    input_tokens INTEGER NOT NULL,
    output_tokens INTEGER NOT NULL,
    estimated_cost_usd REAL NOT NULL,
    latency_ms INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_usage_user ON usage_records(user_id);
"""

_RECORD_COLUMNS = (
    "id, user_id, order_number, url, source_kind, video_id, video_title, "
    "thumbnail_url, content_source, result, created_at"
)


class SqliteExtractionStore(BaseExtractionStore):
    """SQLite-backed extraction and usage store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(self._db_path), isolation_level=None, check_same_thread=False, timeout=10.0,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def create_record(self, new: NewExtraction) -> ExtractionRecord:
        record_id = str(uuid.uuid4())
        created_at = datetime.now(timezone.utc)

        self._conn.execute("BEGIN IMMEDIATE")
        try:
            row = self._conn.execute(
                "SELECT COALESCE(MAX(order_number), 0) FROM extractions WHERE user_id = ?",
                (new.user_id,),
            ).fetchone()
            order_number = int(row[0]) + 1
            self._conn.execute(
                f"INSERT INTO extractions ({_RECORD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record_id, new.user_id, order_number, new.url, new.source_kind.value,
                    new.video_id, new.video_title, new.thumbnail_url,
                    new.content_source.value, new.result.model_dump_json(),
                    created_at.isoformat(),
                ),
            )
            self._conn.execute("COMMIT")
        except sqlite3.Error:
            self._conn.execute("ROLLBACK")
            raise

        return ExtractionRecord(
            **new.model_dump(), id=record_id, order_number=order_number, created_at=created_at,
        )

    async def record_usage(self, records: list[UsageRecord]) -> None:
        if not records:
            return
        self._conn.execute("BEGIN")
        try:
            self._conn.executemany(
                """INSERT INTO usage_records
                   (extraction_id, user_id, step, provider, model, input_tokens,
                    output_tokens, estimated_cost_usd, latency_ms, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        r.extraction_id, r.user_id, r.step, r.provider, r.model,
                        r.input_tokens, r.output_tokens, r.estimated_cost_usd,
                        r.latency_ms, r.created_at.isoformat(),
                    )
                    for r in records
                ],
            )
            self._conn.execute("COMMIT")
        except sqlite3.Error:
            self._conn.execute("ROLLBACK")
            raise

    async def get_record(self, record_id: str) -> ExtractionRecord | None:
        row = self._conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM extractions WHERE id = ?", (record_id,),
        ).fetchone()
        return self._to_record(row) if row else None

    async def list_records(self, user_id: str, limit: int = 50) -> list[ExtractionRecord]:
        rows = self._conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM extractions WHERE user_id = ? "
            "ORDER BY order_number DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
        return [self._to_record(row) for row in rows]

    async def list_usage(self, user_id: str) -> list[UsageRecord]:
        rows = self._conn.execute(
            """SELECT extraction_id, user_id, step, provider, model, input_tokens,
                      output_tokens, estimated_cost_usd, latency_ms, created_at
               FROM usage_records WHERE user_id = ? ORDER BY id""",
            (user_id,),
        ).fetchall()
        return [
            UsageRecord(
                extraction_id=r[0], user_id=r[1], step=r[2], provider=r[3], model=r[4],
                input_tokens=r[5], output_tokens=r[6], estimated_cost_usd=r[7],
                latency_ms=r[8], created_at=datetime.fromisoformat(r[9]),
            )
            for r in rows
        ]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _to_record(row: tuple) -> ExtractionRecord:
        return ExtractionRecord(
            id=row[0],
            user_id=row[1],
            order_number=row[2],
            url=row[3],
            source_kind=row[4],
            video_id=row[5],
            video_title=row[6],
            thumbnail_url=row[7],
            content_source=row[8],
            result=StructuredResult.model_validate_json(row[9]),
            created_at=datetime.fromisoformat(row[10]),
        )
