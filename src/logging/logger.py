# src/logging/logger.py — v3
"""Logging setup for the CLI and the HTTP server.

JSON lines in production, a compact text line for terminals. Every
record carries the run context (request id, user, content identity,
pipeline step) from logging/context.py. Output goes to stderr so the
CLI can print results on stdout.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from actionextractor.logging.context import get_context

ROOT_LOGGER = "actionextractor"

# uvicorn runs with log_config=None and shares our handlers
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# SDK and transport loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "anthropic", "openai", "google")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(get_context().as_dict())

        # logger.info(..., extra={"data": {...}})
        data = getattr(record, "data", None)
        if data:
            log_entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """``time [LEVEL] logger [request] (step) - message``."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        parts = [stamp.strftime("%Y-%m-%d %H:%M:%S"), f"[{record.levelname:8s}]", record.name]
        if ctx.request_id:
            parts.append(f"[{ctx.request_id[:8]}]")
        if ctx.step:
            parts.append(f"({ctx.step})")
        parts.append(f"- {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _attach(logger: logging.Logger, handlers: list[logging.Handler], level: int) -> None:
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in handlers:
        logger.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Configure the actionextractor and uvicorn loggers.

    Safe to call again: handlers are replaced, never stacked.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Rotating log file in addition to stderr.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]

    if log_file:
        from actionextractor.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(log_file, rotation=rotation, retention=retention)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    _attach(logging.getLogger(ROOT_LOGGER), handlers, numeric_level)
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        _attach(server_logger, handlers, logging.INFO)
        server_logger.propagate = False

    # debug mode keeps SDK chatter visible
    quiet_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
