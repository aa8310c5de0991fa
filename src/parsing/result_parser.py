# src/parsing/result_parser.py — v2
"""Raw model text → StructuredResult.

Normalization is lenient about shapes (missing keys, snake_case keys,
string ids) but a payload without a single usable phase is a failure.
"""

from __future__ import annotations

import logging
from typing import Any

from actionextractor.core.models import (
    DIFFICULTY_LABELS,
    ExtractionMode,
    Phase,
    ResultMetadata,
    StructuredResult,
)
from actionextractor.core.reading_time import estimate_time
from actionextractor.parsing.json_extract import ParseFailure, load_json_object

logger = logging.getLogger(__name__)

DEFAULT_READING_TIME = "3 min"

_DIFFICULTY_LEVELS: dict[str, int] = {
    "fácil": 0, "facil": 0, "easy": 0, "baja": 0, "low": 0,
    "media": 1, "medio": 1, "medium": 1, "intermedia": 1, "intermediate": 1, "moderate": 1,
    "difícil": 2, "dificil": 2, "hard": 2, "alta": 2, "high": 2, "difficult": 2,
}


def normalize_difficulty(value: Any, language: str) -> str:
    """Map any known difficulty label (either language) to ``language``'s label."""
    labels = DIFFICULTY_LABELS.get(language, DIFFICULTY_LABELS["es"])
    if isinstance(value, str):
        level = _DIFFICULTY_LEVELS.get(value.strip().lower())
        if level is not None:
            return labels[level]
    return labels[1]


def _get(payload: dict[str, Any], camel: str, snake: str) -> Any:
    return payload[camel] if camel in payload else payload.get(snake)


def _coerce_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str) and value.strip().isdecimal() and int(value) > 0:
        return int(value)
    return None


def _coerce_phases(raw: Any) -> list[Phase]:
    if not isinstance(raw, list):
        return []
    phases: list[Phase] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        title = entry.get("title")
        title = title.strip() if isinstance(title, str) else ""
        raw_items = entry.get("items")
        items = [
            item.strip() for item in raw_items
            if isinstance(item, str) and item.strip()
        ] if isinstance(raw_items, list) else []
        if not title and not items:
            continue
        phase_id = _coerce_id(entry.get("id")) or len(phases) + 1
        phases.append(Phase(id=phase_id, title=title, items=items))
    return phases


def normalize_payload(
    payload: dict[str, Any],
    mode: ExtractionMode,
    language: str,
    word_count: int,
) -> StructuredResult:
    """Apply defaults and coercions to a decoded payload.

    Raises:
        ParseFailure: If no usable phase remains.
    """
    phases = _coerce_phases(payload.get("phases"))
    if not phases:
        raise ParseFailure("model output has no usable phases")

    objective = payload.get("objective")
    pro_tip = _get(payload, "proTip", "pro_tip")
    raw_meta = payload.get("metadata")
    meta = raw_meta if isinstance(raw_meta, dict) else {}
    reading_time = _get(meta, "readingTime", "reading_time")
    original_time, saved_time = estimate_time(word_count)

    return StructuredResult(
        mode=mode,
        language=language,
        objective=objective.strip() if isinstance(objective, str) else "",
        phases=phases,
        pro_tip=pro_tip.strip() if isinstance(pro_tip, str) else "",
        metadata=ResultMetadata(
            reading_time=reading_time.strip()
            if isinstance(reading_time, str) and reading_time.strip()
            else DEFAULT_READING_TIME,
            difficulty=normalize_difficulty(meta.get("difficulty"), language),
            original_time=original_time,
            saved_time=saved_time,
        ),
    )


def parse_model_output(
    text: str,
    mode: ExtractionMode,
    language: str,
    word_count: int,
) -> StructuredResult:
    """Parse raw model text directly, without any repair call.

    Raises:
        ParseFailure: If the text holds no usable structured result.
    """
    payload = load_json_object(text)
    return normalize_payload(payload, mode=mode, language=language, word_count=word_count)
