# src/llm/retry.py — v2
"""Reusable retry policy with exponential backoff and error classification.

One RetryPolicy object is shared by transcript fetches, extraction calls
and repair calls. Backoff sleeps go through the run's AbortSignal so a
cancelled run stops waiting immediately. AbortedError is never retried.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from actionextractor.core.cancellation import AbortedError, AbortSignal

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, int, float, Exception], Any]


class RetryExhausted(Exception):
    """Call failed for good: either a fatal error or the attempt ceiling."""

    def __init__(self, operation: str, attempts: int, last_error: Exception, fatal: bool):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        self.fatal = fatal
        super().__init__(
            f"'{operation}' failed after {attempts} attempt(s)"
            f"{' (fatal)' if fatal else ''}: {last_error}"
        )


# === ERROR CLASSIFICATION ===


@dataclass(frozen=True)
class AIErrorInfo:
    """Classified AI provider failure."""

    classification: str  # auth, rate-limited, upstream-5xx, network, invalid-request, unknown
    status: int
    retryable: bool
    message: str


_NETWORK_MARKERS = ("timeout", "timedout", "connection", "connect", "network", "transport")


def get_error_status(error: BaseException) -> int | None:
    """Extract an HTTP status code from a provider SDK exception, if any."""
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    response = getattr(error, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value
    return None


def is_network_error(error: BaseException) -> bool:
    """True for timeouts and connection failures from any SDK or asyncio."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    name = type(error).__name__.lower()
    return any(marker in name for marker in _NETWORK_MARKERS)


def classify_ai_error(error: BaseException) -> AIErrorInfo:
    """Map a provider exception to a classification and caller-facing status."""
    if isinstance(error, json.JSONDecodeError):
        return AIErrorInfo("invalid-request", 502, False, "The AI service returned an unreadable response.")

    status = get_error_status(error)
    if status == 429:
        return AIErrorInfo("rate-limited", 429, True, "The AI service is rate limiting requests. Try again shortly.")
    if status in (401, 403):
        return AIErrorInfo("auth", 503, False, "The AI service rejected our credentials.")
    if status is not None and status >= 500:
        return AIErrorInfo("upstream-5xx", 502, True, "The AI service is temporarily unavailable.")
    if status is None and is_network_error(error):
        return AIErrorInfo("network", 503, True, "Could not reach the AI service.")
    if status is not None and 400 <= status < 500:
        return AIErrorInfo("invalid-request", 502, False, "The AI service rejected the request.")
    return AIErrorInfo("unknown", 502, True, "The AI service failed unexpectedly.")


def is_retryable_ai_error(error: BaseException) -> bool:
    return classify_ai_error(error).retryable


# === POLICY ===


def _always_retry(_: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling, backoff and retryability for one kind of call."""

    max_attempts: int = 3
    base_delay_s: float = 1.2
    backoff_factor: float = 2.0
    jitter: bool = False
    retryable: Callable[[BaseException], bool] = _always_retry

    def compute_delay(self, attempt: int) -> float:
        """Delay before the next try after failed ``attempt`` (1-based)."""
        delay = self.base_delay_s * (self.backoff_factor ** (attempt - 1))
        if self.jitter:
            delay *= 0.5 + random.random()  # noqa: S311
        return delay

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, AbortedError):
            return False
        return self.retryable(error)


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    policy: RetryPolicy,
    operation: str = "unknown",
    signal: AbortSignal | None = None,
    on_retry: RetryCallback | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async function under ``policy``.

    Args:
        fn: Coroutine function to call.
        policy: Attempt ceiling, backoff and retryability predicate.
        operation: Name used in logs and in RetryExhausted.
        signal: Abort signal checked before each try and during sleeps.
        on_retry: Called as ``on_retry(next_attempt, max_attempts, delay, error)``
            before each backoff sleep. May be sync or async.

    Raises:
        AbortedError: If the signal fires; never wrapped or retried.
        RetryExhausted: On a fatal error or when attempts run out.
    """
    attempt = 0
    while True:
        attempt += 1
        if signal is not None:
            signal.raise_if_aborted()
        try:
            return await fn(*args, **kwargs)
        except AbortedError:
            raise
        except Exception as e:
            if not policy.is_retryable(e):
                raise RetryExhausted(operation, attempt, e, fatal=True) from e
            if attempt >= policy.max_attempts:
                raise RetryExhausted(operation, attempt, e, fatal=False) from e

            delay = policy.compute_delay(attempt)
            logger.warning(
                "'%s' failed (attempt %d/%d): %s; retrying in %.1fs",
                operation, attempt, policy.max_attempts, e, delay,
            )
            if on_retry is not None:
                result = on_retry(attempt + 1, policy.max_attempts, delay, e)
                if inspect.isawaitable(result):
                    await result
            if signal is not None:
                await signal.sleep(delay)
            else:
                await asyncio.sleep(delay)
