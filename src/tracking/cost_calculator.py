# src/tracking/cost_calculator.py — v2
"""Cost calculation from LLM call records.

Prices are USD per 1M tokens as published by each provider. Unknown
models cost 0.
"""

from __future__ import annotations

from collections import defaultdict

from actionextractor.tracking.models import LLMCallRecord, ModelPricing, UsageSummary


def _p(model: str, input_price: float, output_price: float) -> tuple[str, ModelPricing]:
    return model, ModelPricing(
        model=model, input_price_per_1m=input_price, output_price_per_1m=output_price,
    )


DEFAULT_PRICING: dict[str, ModelPricing] = dict([
    _p("claude-opus-4-6", 15.0, 75.0),
    _p("claude-sonnet-4-6", 3.0, 15.0),
    _p("claude-haiku-4-5-20251001", 0.8, 4.0),
    _p("gpt-4o", 2.5, 10.0),
    _p("gpt-4o-mini", 0.15, 0.6),
    _p("o1-mini", 1.1, 4.4),
    _p("gemini-2.0-flash", 0.075, 0.3),
    _p("gemini-2.0-flash-lite", 0.0375, 0.15),
    _p("gemini-1.5-pro", 1.25, 5.0),
    _p("gemini-1.5-flash", 0.075, 0.3),
])


def estimate_cost_usd(
    model: str,
    input_tokens: int,
    output_tokens: int,
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Estimated cost of a call in USD; 0.0 when the model is not priced."""
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(model)
    if p is None:
        return 0.0
    return (input_tokens * p.input_price_per_1m / 1_000_000
            + output_tokens * p.output_price_per_1m / 1_000_000)


def compute_call_cost(record: LLMCallRecord, pricing: dict[str, ModelPricing] | None = None) -> float:
    """Compute estimated cost for a single LLM call in USD."""
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(record.model)
    if p is None:
        return 0.0
    return (estimate_cost_usd(record.model, record.input_tokens, record.output_tokens, pricing)
            + record.cache_read_tokens * p.cache_read_per_1m / 1_000_000
            + record.cache_write_tokens * p.cache_write_per_1m / 1_000_000)


def summarize(records: list[LLMCallRecord]) -> UsageSummary:
    """Aggregate call records into run totals, cost broken down by step."""
    by_step: dict[str, float] = defaultdict(float)
    for r in records:
        by_step[r.step] += r.estimated_cost_usd
    return UsageSummary(
        total_calls=len(records),
        total_input_tokens=sum(r.input_tokens for r in records),
        total_output_tokens=sum(r.output_tokens for r in records),
        estimated_cost_usd=sum(r.estimated_cost_usd for r in records),
        by_step=dict(by_step),
    )
