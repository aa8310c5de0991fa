# src/core/cancellation.py — v1
"""Cooperative cancellation for a single pipeline run.

An AbortSignal is handed to every suspension point of a run (backoff
sleeps, provider streams). The transport aborts it when the client goes
away; work checks it and raises AbortedError, which is never retried.
"""

from __future__ import annotations

import asyncio


class AbortedError(Exception):
    """Run was cancelled by its caller."""

    def __init__(self, reason: str = "aborted"):
        self.reason = reason
        super().__init__(reason)


class AbortSignal:
    """One-shot abort flag backed by an asyncio.Event."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "aborted"

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def abort(self, reason: str = "aborted") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_aborted(self) -> None:
        if self._event.is_set():
            raise AbortedError(self._reason)

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early and raising on abort."""
        self.raise_if_aborted()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise AbortedError(self._reason)
