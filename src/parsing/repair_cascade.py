# src/parsing/repair_cascade.py — v1
"""Escalating repair of malformed model output.

Direct parse first; then each repair prompt generator in order (full
fidelity, then compact). Every repair is its own AI call under the
repair retry policy and is tracked as ``repair-<n>`` usage.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from actionextractor.core.cancellation import AbortSignal
from actionextractor.core.errors import InvalidModelOutputError
from actionextractor.core.models import ExtractionMode, StructuredResult
from actionextractor.llm.models import Prompt
from actionextractor.llm.orchestrator import AIOrchestrator
from actionextractor.parsing.json_extract import ParseFailure
from actionextractor.parsing.result_parser import parse_model_output
from actionextractor.prompts.builder import build_repair_prompt
from actionextractor.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

RepairPromptGenerator = Callable[[str, str], Prompt]
StatusCallback = Callable[[str, str], Awaitable[None] | None]

MSG_INVALID_OUTPUT = (
    "The AI returned an invalid format even after automatic correction. "
    "Try again or use a different source."
)


def full_repair(raw_text: str, language: str) -> Prompt:
    return build_repair_prompt(raw_text, language, compact=False)


def compact_repair(raw_text: str, language: str) -> Prompt:
    return build_repair_prompt(raw_text, language, compact=True)


DEFAULT_GENERATORS: tuple[RepairPromptGenerator, ...] = (full_repair, compact_repair)


class RepairCascade:
    """Turns raw model text into a StructuredResult, repairing if needed."""

    def __init__(
        self,
        orchestrator: AIOrchestrator,
        generators: tuple[RepairPromptGenerator, ...] = DEFAULT_GENERATORS,
    ) -> None:
        self._orchestrator = orchestrator
        self._generators = generators

    async def parse(
        self,
        raw_text: str,
        mode: ExtractionMode,
        language: str,
        word_count: int,
        signal: AbortSignal | None = None,
        call_logger: CallLogger | None = None,
        on_status: StatusCallback | None = None,
    ) -> StructuredResult:
        """Parse ``raw_text``, escalating through repair calls on failure.

        Raises:
            InvalidModelOutputError: When the direct parse and every repair fail.
            AIProviderError: When a repair call itself fails.
            AbortedError: If ``signal`` fires.
        """
        try:
            return parse_model_output(raw_text, mode, language, word_count)
        except ParseFailure as e:
            logger.warning("Direct parse failed (%s); starting repair cascade", e)

        if on_status is not None:
            result = on_status("repair-json", "Repairing the AI response format")
            if result is not None:
                await result

        for index, generator in enumerate(self._generators, start=1):
            step = f"repair-{index}"
            response = await self._orchestrator.invoke(
                generator(raw_text, language),
                step=step,
                signal=signal,
                call_logger=call_logger,
            )
            try:
                parsed = parse_model_output(response.content, mode, language, word_count)
            except ParseFailure as e:
                logger.warning("Repair %s produced unusable output: %s", step, e)
                continue
            logger.info("Model output recovered by %s", step)
            return parsed

        raise InvalidModelOutputError(MSG_INVALID_OUTPUT)
