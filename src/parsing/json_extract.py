# src/parsing/json_extract.py — v1
"""Locate and decode the JSON object inside raw model text."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?\s*```\s*$")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


class ParseFailure(ValueError):
    """Model text could not be turned into a usable payload."""


def strip_code_fences(text: str) -> str:
    text = _FENCE_OPEN.sub("", text.strip(), count=1)
    return _FENCE_CLOSE.sub("", text, count=1).strip()


def locate_json_object(text: str) -> str | None:
    """Slice from the first ``{`` to the last ``}``; None when absent."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def load_json_object(text: str) -> dict[str, Any]:
    """Decode the outermost JSON object in ``text``.

    Tries a strict parse first, then again with trailing commas removed.

    Raises:
        ParseFailure: No object found, undecodable, or not an object.
    """
    candidate = locate_json_object(strip_code_fences(text))
    if candidate is None:
        raise ParseFailure("no JSON object in model output")

    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError:
        try:
            payload = json.loads(strip_trailing_commas(candidate))
        except json.JSONDecodeError as e:
            raise ParseFailure(f"invalid JSON in model output: {e.msg}") from e

    if not isinstance(payload, dict):
        raise ParseFailure("model output JSON is not an object")
    return payload
