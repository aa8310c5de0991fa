# src/extraction/language_detector.py — v3
"""Output language resolution.

Uses lingua-py restricted to English and Spanish, the two output
languages the prompts exist in. Anything undecidable resolves to Spanish.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from actionextractor.core.models import OutputLanguage

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "es"
_SAMPLE_CHARS = 5000


@lru_cache(maxsize=1)
def _detector():
    from lingua import Language, LanguageDetectorBuilder

    return LanguageDetectorBuilder.from_languages(Language.ENGLISH, Language.SPANISH).build()


def detect_language(text: str) -> str:
    """Detect "en" or "es" for ``text``; default "es"."""
    sample = text.strip()[:_SAMPLE_CHARS]
    if not sample:
        return DEFAULT_LANGUAGE

    lang = _detector().detect_language_of(sample)
    if lang is None:
        return DEFAULT_LANGUAGE
    code = lang.iso_code_639_1.name.lower()
    return code if code in ("en", "es") else DEFAULT_LANGUAGE


def resolve_output_language(requested: OutputLanguage | str, text: str) -> str:
    """Resolve the requested output language to "es" or "en".

    Args:
        requested: "auto", "es" or "en".
        text: Source content, used only for "auto".

    Returns:
        ISO 639-1 code of the output language.
    """
    value = requested.value if isinstance(requested, OutputLanguage) else str(requested)
    if value in ("es", "en"):
        return value
    detected = detect_language(text)
    logger.debug("Auto-detected output language: %s", detected)
    return detected
