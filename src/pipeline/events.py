# src/pipeline/events.py — v1
"""Ordered progress events for one pipeline run.

EventChannel is the single writer-side gate: once ``done`` is emitted
nothing else is accepted, at most one of ``result``/``error`` is sent,
and after an abort every further event is dropped silently.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterator

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    STATUS = "status"
    TEXT = "text"
    RESULT = "result"
    ERROR = "error"
    DONE = "done"


class PipelineEvent(BaseModel):
    type: EventType
    data: dict[str, Any] = Field(default_factory=dict)


class EventOrderError(RuntimeError):
    """An event was emitted out of protocol order."""


class EventChannel:
    """Queue of PipelineEvents with ordering enforcement."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[PipelineEvent | None] = asyncio.Queue()
        self._done = False
        self._aborted = False
        self._outcome: EventType | None = None
        self._history: list[PipelineEvent] = []

    @property
    def closed(self) -> bool:
        return self._done or self._aborted

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def history(self) -> list[PipelineEvent]:
        """Every event accepted so far, in order."""
        return list(self._history)

    # --- Writer side ---

    def status(self, step: str, message: str) -> None:
        self._emit(EventType.STATUS, {"step": step, "message": message})

    def text(self, chunk: str) -> None:
        if self._outcome is not None and not self._aborted:
            raise EventOrderError("text after the run outcome")
        self._emit(EventType.TEXT, {"chunk": chunk})

    def result(self, payload: dict[str, Any]) -> None:
        self._claim_outcome(EventType.RESULT)
        self._emit(EventType.RESULT, payload)

    def error(self, message: str, kind: str | None = None) -> None:
        self._claim_outcome(EventType.ERROR)
        data: dict[str, Any] = {"message": message}
        if kind is not None:
            data["kind"] = kind
        self._emit(EventType.ERROR, data)

    def done(self, ok: bool) -> None:
        if self._aborted:
            return
        if self._done:
            raise EventOrderError("done emitted twice")
        self._emit(EventType.DONE, {"ok": ok})
        self._done = True
        self._queue.put_nowait(None)

    def abort(self) -> None:
        """Stop accepting events and release the reader without a ``done``."""
        if self.closed:
            return
        self._aborted = True
        # undelivered events are discarded
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    def _claim_outcome(self, kind: EventType) -> None:
        if self._aborted:
            return
        if self._outcome is not None:
            raise EventOrderError(f"{kind.value} after {self._outcome.value}")
        self._outcome = kind

    def _emit(self, kind: EventType, data: dict[str, Any]) -> None:
        if self._aborted:
            logger.debug("Dropping %s event after abort", kind.value)
            return
        if self._done:
            raise EventOrderError(f"{kind.value} after done")
        event = PipelineEvent(type=kind, data=data)
        self._history.append(event)
        self._queue.put_nowait(event)

    # --- Reader side ---

    async def events(self) -> AsyncIterator[PipelineEvent]:
        """Yield events until ``done`` (inclusive) or an abort."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
