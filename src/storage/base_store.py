# src/storage/base_store.py — v1
"""Abstract persistence contract for extraction records and AI usage."""

from __future__ import annotations

from abc import ABC, abstractmethod

from actionextractor.storage.models import ExtractionRecord, NewExtraction, UsageRecord


class BaseExtractionStore(ABC):
    """Unified interface for the relational store."""

    @abstractmethod
    async def create_record(self, new: NewExtraction) -> ExtractionRecord:
        """Persist an extraction with the next user-scoped order number."""

    @abstractmethod
    async def record_usage(self, records: list[UsageRecord]) -> None:
        """Persist usage rows."""

    @abstractmethod
    async def get_record(self, record_id: str) -> ExtractionRecord | None:
        """Fetch one extraction by id."""

    @abstractmethod
    async def list_records(self, user_id: str, limit: int = 50) -> list[ExtractionRecord]:
        """A user's extractions, newest first."""

    @abstractmethod
    async def list_usage(self, user_id: str) -> list[UsageRecord]:
        """A user's usage rows, oldest first."""

    def close(self) -> None:
        """Release backend resources. No-op by default."""
