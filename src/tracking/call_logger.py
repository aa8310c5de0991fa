# src/tracking/call_logger.py — v2
"""LLM call logging: records every AI call of a run for cost tracking.

The persistence writer turns these records into usage rows.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from actionextractor.llm.models import LLMResponse
from actionextractor.tracking.cost_calculator import compute_call_cost
from actionextractor.tracking.models import LLMCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates LLM call records during a pipeline run."""

    def __init__(self) -> None:
        self._records: list[LLMCallRecord] = []

    def record(
        self,
        step: str,
        response: LLMResponse,
        retry_count: int = 0,
    ) -> LLMCallRecord:
        """Record a successful LLM call.

        Args:
            step: Call step ("extraction", "repair-1", "repair-2").
            response: LLM response with token usage.
            retry_count: Number of failed attempts before this result.

        Returns:
            The recorded LLMCallRecord, priced.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            step=step,
            provider=response.provider,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.input_tokens + response.output_tokens,
            cache_read_tokens=response.cache_read_tokens,
            cache_write_tokens=response.cache_write_tokens,
            latency_ms=response.latency_ms,
            retry_count=retry_count,
        )
        record.estimated_cost_usd = compute_call_cost(record)
        self._records.append(record)
        logger.debug(
            "LLM call %s: %s/%s in=%d out=%d cost=$%.5f",
            step, record.provider, record.model,
            record.input_tokens, record.output_tokens, record.estimated_cost_usd,
        )
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across all calls."""
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        """Total number of LLM calls."""
        return len(self._records)

    def save(self, path: Path) -> None:
        """Append all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
