# src/api/sse.py — v1
"""Server-Sent Events transport for streaming runs.

The pipeline runs as its own task writing into an EventChannel; this
module reads the channel and frames each event. When the client goes
away the generator is closed (or notices the disconnect), aborts the
run's signal and cancels the task.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, AsyncIterator

from actionextractor.core.cancellation import AbortSignal
from actionextractor.core.models import ExtractionRequest
from actionextractor.pipeline.events import EventChannel, PipelineEvent
from actionextractor.pipeline.models import Precheck
from actionextractor.pipeline.runner import ExtractionPipeline

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: PipelineEvent) -> str:
    """Frame one event as ``event: <type>\\ndata: <json>\\n\\n``."""
    data = json.dumps(event.data, ensure_ascii=False, default=str)
    return f"event: {event.type.value}\ndata: {data}\n\n"


async def stream_run(
    pipeline: ExtractionPipeline,
    request: ExtractionRequest,
    http_request: Any | None = None,
    precheck: Precheck | None = None,
    request_id: str | None = None,
) -> AsyncIterator[str]:
    """Run ``request`` and yield its SSE frames until ``done``.

    Args:
        pipeline: Pipeline to run.
        request: Extraction request.
        http_request: Object with an async ``is_disconnected()`` (the
            Starlette request); polled between events.
        precheck: Precheck done before the stream was opened.
        request_id: Correlation id for logs.
    """
    channel = EventChannel()
    signal = AbortSignal()
    task = asyncio.create_task(pipeline.run_streaming(
        request, channel, signal, precheck=precheck, request_id=request_id,
    ))
    try:
        async for event in channel.events():
            if http_request is not None and await http_request.is_disconnected():
                logger.info("Client disconnected; aborting run")
                break
            yield format_sse(event)
    finally:
        if not task.done():
            signal.abort("client disconnected")
            channel.abort()
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
