# src/tracking/models.py — v2
"""Tracking domain models: LLMCallRecord, ModelPricing, UsageSummary."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class LLMCallRecord(BaseModel):
    """Individual LLM API call log entry."""

    call_id: str
    timestamp: datetime
    step: str  # extraction, repair-1, repair-2
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    latency_ms: int
    status: Literal["success", "failed"] = "success"
    retry_count: int = 0
    estimated_cost_usd: float = 0.0


class ModelPricing(BaseModel):
    """LLM model pricing configuration (USD per 1M tokens)."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float
    cache_read_per_1m: float = 0.0
    cache_write_per_1m: float = 0.0


class UsageSummary(BaseModel):
    """Totals across the calls of one run."""

    total_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    estimated_cost_usd: float = 0.0
    by_step: dict[str, float] = {}
