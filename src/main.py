# src/main.py — v1
"""CLI entry point — generate and status commands.

Usage:
    ridecoach generate <plan_id> [--force] [--endpoint URL]
    ridecoach status <plan_id>

Exit codes: 0 success, 1 error or failed run, 2 insufficient data,
130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ridecoach.version import __version__

if TYPE_CHECKING:
    from ridecoach.config.settings import Settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INSUFFICIENT_DATA = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    from pydantic import ValidationError

    from ridecoach.config.settings import ConfigurationError, load_settings
    from ridecoach.logging.logger import setup_logging

    overrides: dict[str, object] = {}
    if getattr(args, "endpoint", None):
        overrides["remote_endpoint_url"] = args.endpoint
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    try:
        settings = load_settings(**overrides)
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ridecoach",
        description=f"ridecoach v{__version__} — Event-prep plan generator",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- generate ---
    p_generate = subparsers.add_parser(
        "generate", help="Generate the four-section plan for an event",
    )
    p_generate.add_argument("plan_id", help="Event-prep plan ID")
    p_generate.add_argument(
        "--force", action="store_true",
        help="Bypass the cached plan and regenerate every section",
    )
    p_generate.add_argument(
        "--endpoint", default=None,
        help="Callable function URL (default: REMOTE_ENDPOINT_URL)",
    )
    p_generate.set_defaults(func=_cmd_generate)

    # --- status ---
    p_status = subparsers.add_parser(
        "status", help="Show the cached plan's age and staleness",
    )
    p_status.add_argument("plan_id", help="Event-prep plan ID")
    p_status.set_defaults(func=_cmd_status)

    return parser


async def _cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    """Run generation, printing each section as it lands."""
    from ridecoach.api.facade import create_orchestrator
    from ridecoach.core.models import SECTION_TITLES, GenerationRequest
    from ridecoach.presentation.presenter import ProgressivePresenter

    orchestrator = create_orchestrator(settings)
    presenter = ProgressivePresenter()
    request = GenerationRequest(source_plan_id=args.plan_id, force_refresh=args.force)

    async for event in orchestrator.start_generation(request):
        presenter.apply(event)
        if event.kind == "started":
            print(presenter.header)
        elif event.kind == "completed" and event.step in SECTION_TITLES:
            _print_section(SECTION_TITLES[event.step], event.payload)
        elif event.kind == "cache_hit":
            print("Served from cache.")
            for n, title in SECTION_TITLES.items():
                _print_section(title, presenter.slot(n).payload)

    state = orchestrator.state
    if presenter.stale_banner:
        print(f"\n{presenter.stale_banner}")
    if presenter.notice:
        print(f"\n{presenter.notice}")
        return EXIT_INSUFFICIENT_DATA
    if state.status == "failed":
        print(f"\nStep {state.failed_step} failed: {presenter.error_message}")
        return EXIT_ERROR
    print(f"\nPlan complete (run {state.run_id}).")
    return EXIT_OK


async def _cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    """Display the cached plan for an event without generating."""
    from ridecoach.api.facade import get_cached_plan

    cached = await get_cached_plan(args.plan_id, settings)
    if cached is None:
        print(f"No generated plan for {args.plan_id}.")
        return EXIT_ERROR

    generated_at = cached.artifact.generated_at
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    age_days = (datetime.now(timezone.utc) - generated_at).days

    print(f"\nPlan {args.plan_id}:")
    print(f"  Generated:  {generated_at.isoformat()} ({age_days} days ago)")
    print(f"  Version:    {cached.artifact.version}")
    print(f"  Stale:      {'yes' if cached.stale else 'no'}")
    if cached.stale:
        print(f"  Reason:     {cached.stale_reason} [{cached.reason_code}]")
    return EXIT_OK


def _print_section(title: str, payload: object) -> None:
    print(f"\n== {title} ==")
    if isinstance(payload, str):
        print(payload)
    else:
        print(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":
    sys.exit(main())
