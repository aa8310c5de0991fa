# src/core/reading_time.py — v1
"""Word counts and time estimates for source content (~150 words/minute)."""

from __future__ import annotations

WORDS_PER_MINUTE = 150
SUMMARY_MINUTES = 3


def count_words(text: str) -> int:
    return len(text.split())


def format_minutes(total_minutes: int) -> str:
    """Format as "Xh Ym" from one hour on, "Ym" below."""
    hours, mins = divmod(max(total_minutes, 0), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def estimate_time(word_count: int) -> tuple[str, str]:
    """Return (original_time, saved_time) for a source of ``word_count`` words.

    The saved time assumes the structured result takes three minutes to read.
    """
    total = round(word_count / WORDS_PER_MINUTE)
    saved = max(total - SUMMARY_MINUTES, 0)
    return format_minutes(total), format_minutes(saved)
