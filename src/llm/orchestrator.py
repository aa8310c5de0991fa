# src/llm/orchestrator.py — v2
"""AI invocation with retry, classification and cancellation.

Wraps one BaseLLMClient with a RetryPolicy. Every failure leaving this
module is either AbortedError (never retried) or a classified
AIProviderError.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Awaitable, Callable

from actionextractor.core.cancellation import AbortSignal
from actionextractor.core.errors import AIProviderError
from actionextractor.llm.base_client import BaseLLMClient, ChunkCallback
from actionextractor.llm.models import CallOptions, LLMResponse, Prompt
from actionextractor.llm.retry import (
    RetryCallback,
    RetryExhausted,
    RetryPolicy,
    classify_ai_error,
    is_retryable_ai_error,
    with_retry,
)
from actionextractor.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


def ai_retry_policy(max_attempts: int, base_delay_s: float, backoff_factor: float = 2.0) -> RetryPolicy:
    """RetryPolicy whose predicate follows the AI error classifier."""
    return RetryPolicy(
        max_attempts=max_attempts,
        base_delay_s=base_delay_s,
        backoff_factor=backoff_factor,
        retryable=is_retryable_ai_error,
    )


class AIOrchestrator:
    """Invokes one provider/model in batch or streaming form."""

    def __init__(
        self,
        client: BaseLLMClient,
        policy: RetryPolicy,
        options: CallOptions | None = None,
    ) -> None:
        self._client = client
        self._policy = policy
        self._options = options or CallOptions()

    @property
    def model_identity(self) -> str:
        """``provider:model`` of the wrapped client."""
        return f"{self._client.provider_name}:{self._client.model_name}"

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def invoke(
        self,
        prompt: Prompt,
        *,
        step: str = "extraction",
        options: CallOptions | None = None,
        signal: AbortSignal | None = None,
        on_retry: RetryCallback | None = None,
        call_logger: CallLogger | None = None,
    ) -> LLMResponse:
        """Batch completion under the retry policy.

        Raises:
            AIProviderError: On a fatal failure or exhausted retries.
            AbortedError: If ``signal`` fires.
        """
        opts = options or self._options

        async def call() -> LLMResponse:
            return await self._client.complete(
                prompt.to_messages(),
                system=prompt.system,
                max_tokens=opts.max_tokens,
                temperature=opts.temperature,
            )

        return await self._run(call, step, signal, on_retry, call_logger)

    async def stream(
        self,
        prompt: Prompt,
        on_chunk: ChunkCallback,
        *,
        step: str = "extraction",
        options: CallOptions | None = None,
        signal: AbortSignal | None = None,
        on_retry: RetryCallback | None = None,
        call_logger: CallLogger | None = None,
    ) -> LLMResponse:
        """Streaming completion; each text delta goes to ``on_chunk``.

        A failure before the first delta is retried under the policy; once
        text has reached ``on_chunk`` the failure surfaces as is.

        Raises:
            AIProviderError: On a fatal failure or exhausted retries.
            AbortedError: If ``signal`` fires.
        """
        opts = options or self._options
        emitted = False

        def forward(chunk: str) -> None:
            nonlocal emitted
            emitted = True
            on_chunk(chunk)

        def retryable(error: BaseException) -> bool:
            return not emitted and self._policy.retryable(error)

        policy = replace(self._policy, retryable=retryable)

        async def call() -> LLMResponse:
            return await self._client.stream(
                prompt.to_messages(),
                system=prompt.system,
                max_tokens=opts.max_tokens,
                temperature=opts.temperature,
                on_chunk=forward,
                signal=signal,
            )

        return await self._run(call, step, signal, on_retry, call_logger, policy=policy)

    async def _run(
        self,
        call: Callable[[], Awaitable[LLMResponse]],
        step: str,
        signal: AbortSignal | None,
        on_retry: RetryCallback | None,
        call_logger: CallLogger | None,
        policy: RetryPolicy | None = None,
    ) -> LLMResponse:
        policy = policy or self._policy
        attempts = 0

        async def attempt() -> LLMResponse:
            nonlocal attempts
            attempts += 1
            return await call()

        try:
            response = await with_retry(
                attempt,
                policy=policy,
                operation=f"ai:{step}",
                signal=signal,
                on_retry=on_retry,
            )
        except RetryExhausted as e:
            info = classify_ai_error(e.last_error)
            logger.error(
                "AI call '%s' on %s failed after %d attempt(s): %s (%s)",
                step, self.model_identity, e.attempts, info.classification, e.last_error,
            )
            raise AIProviderError(
                info.message,
                classification=info.classification,
                status=info.status,
                retryable=info.retryable,
            ) from e.last_error

        if call_logger is not None:
            call_logger.record(step, response, retry_count=attempts - 1)
        return response
