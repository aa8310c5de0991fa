# src/main.py — v3
"""CLI entry point: serve, extract, purge-cache commands.

Usage:
    actionextractor serve [--host HOST] [--port PORT]
    actionextractor extract <url-or-text> [options]
    actionextractor extract --file <document.pdf|document.docx> [options]
    actionextractor purge-cache --keep-version <tag>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from actionextractor.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from pydantic import ValidationError as SettingsValidationError

    from actionextractor.config.settings import ConfigurationError, load_settings
    from actionextractor.logging.logger import setup_logging

    try:
        settings = load_settings()
    except (ConfigurationError, SettingsValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format="text" if args.command != "serve" else settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return args.func(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    from actionextractor.core.models import ExtractionMode, OutputLanguage

    parser = argparse.ArgumentParser(
        prog="actionextractor",
        description=f"actionextractor v{__version__} — structured action plans from videos, pages and text",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=None, help="Bind host (default: SERVER_HOST)")
    p_serve.add_argument("--port", type=int, default=None, help="Bind port (default: SERVER_PORT)")
    p_serve.set_defaults(func=_cmd_serve)

    # --- extract ---
    p_extract = subparsers.add_parser(
        "extract", help="Extract a structured result and print it as JSON",
    )
    p_extract.add_argument("source", nargs="?", default=None, help="YouTube URL, web URL or raw text")
    p_extract.add_argument(
        "-f", "--file", type=Path, default=None,
        help="Extract from a local .pdf or .docx file instead",
    )
    p_extract.add_argument(
        "-m", "--mode", default=ExtractionMode.ACTION_PLAN.value,
        choices=[m.value for m in ExtractionMode],
        help="Extraction mode (default: action_plan)",
    )
    p_extract.add_argument(
        "-l", "--language", default=OutputLanguage.AUTO.value,
        choices=[lang.value for lang in OutputLanguage],
        help="Output language (default: auto)",
    )
    p_extract.add_argument(
        "-s", "--source-type", default=None,
        help="Source type hint: video, web_url, file_text",
    )
    p_extract.add_argument(
        "-u", "--user", default="cli",
        help="User id charged for the extraction (default: cli)",
    )
    p_extract.add_argument(
        "--usage-log", type=Path, default=None,
        help="Append AI call records (JSON Lines) to this file",
    )
    p_extract.set_defaults(func=_cmd_extract)

    # --- purge-cache ---
    p_purge = subparsers.add_parser(
        "purge-cache", help="Delete cache entries from other prompt versions",
    )
    p_purge.add_argument(
        "--keep-version", default=None,
        help="Prompt version tag to keep (default: PROMPT_VERSION)",
    )
    p_purge.set_defaults(func=_cmd_purge_cache)

    return parser


def _cmd_serve(args: argparse.Namespace, settings) -> int:
    """Run the API under uvicorn."""
    import uvicorn

    from actionextractor.api.server import create_app

    host = args.host or settings.server_host
    port = args.port or settings.server_port
    logger.info("Serving on %s:%d", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
    return 0


def _cmd_extract(args: argparse.Namespace, settings) -> int:
    """Execute one batch extraction and print the response JSON."""
    from actionextractor.api.facade import build_services, extract, read_document
    from actionextractor.core.errors import PipelineError
    from actionextractor.tracking.call_logger import CallLogger
    from actionextractor.tracking.cost_calculator import summarize

    if (args.source is None) == (args.file is None):
        print("Provide either a source or --file, not both.", file=sys.stderr)
        return 1

    data = b""
    if args.file is not None:
        try:
            data = args.file.read_bytes()
        except OSError as exc:
            print(json.dumps({"error": f"Cannot read {args.file}: {exc.strerror}", "kind": "validation"}))
            return 1

    services = build_services(settings)
    call_logger = CallLogger()

    async def run():
        locator, hint = args.source, args.source_type
        if args.file is not None:
            document = await read_document(settings, args.file.name, data)
            logger.info("Read %d chars from %s", document.char_count, args.file)
            locator, hint = document.text, "file_text"
        return await extract(
            services,
            locator,
            user_id=args.user,
            mode=args.mode,
            output_language=args.language,
            source_hint=hint,
            call_logger=call_logger,
        )

    try:
        outcome = asyncio.run(run())
    except PipelineError as exc:
        print(json.dumps({"error": exc.message, "kind": exc.kind.value}, ensure_ascii=False))
        return 1
    finally:
        services.close()

    print(json.dumps(outcome.to_payload(), ensure_ascii=False, indent=2))

    if call_logger.total_calls:
        usage = summarize(call_logger.records)
        logger.info(
            "AI usage: %d calls, %d tokens, $%.4f",
            usage.total_calls, usage.total_input_tokens + usage.total_output_tokens,
            usage.estimated_cost_usd,
        )
    if args.usage_log is not None:
        call_logger.save(args.usage_log)
    return 0


def _cmd_purge_cache(args: argparse.Namespace, settings) -> int:
    """Delete cache entries whose prompt version tag differs."""
    from actionextractor.cache.cache_factory import create_cache_store

    keep = args.keep_version or settings.prompt_version
    cache = create_cache_store(settings)
    try:
        removed = asyncio.run(cache.purge_versions(keep))
    finally:
        cache.close()
    print(f"Removed {removed} cache entries (kept prompt version {keep})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
