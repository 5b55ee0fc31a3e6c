"""Command-line interface for incidentfeed.

Runs the incident pipeline once and prints the ranked incidents.

Usage:
    incidentfeed list
    incidentfeed list --source http --format json
    incidentfeed list --fan-out concurrent --timeout 5
"""

import argparse
import asyncio
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from pydantic import ValidationError

from incidentfeed import __version__
from incidentfeed.config import Settings, settings
from incidentfeed.errors import PipelineError
from incidentfeed.models import Incident
from incidentfeed.pipeline.coordinator import PipelineCoordinator
from incidentfeed.sources.fake import FakeIncidentApi
from incidentfeed.sources.http import IncidentApiClient

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=1)


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="incidentfeed",
        description="incidentfeed: ranked incidents across all locations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  incidentfeed list
  incidentfeed list --source http --format json
  incidentfeed list --fan-out concurrent --timeout 5
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    list_parser = subparsers.add_parser(
        "list",
        help="Fetch, deduplicate and rank incidents",
        description="Fetch incidents from every location and print them by priority, newest first",
    )
    list_parser.add_argument(
        "--source",
        type=str,
        choices=["fake", "http"],
        default="fake",
        help="Incident source: built-in demo data or the HTTP API (default: fake)",
    )
    list_parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    list_parser.add_argument(
        "--fan-out",
        type=str,
        choices=["sequential", "concurrent"],
        default=None,
        help="Per-location fetch mode (default: from settings)",
    )
    list_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Fail the run after this many seconds (default: from settings)",
    )

    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    return parser


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context.

    Spins up a new event loop in a dedicated thread to avoid conflicts
    with any existing event loop.
    """
    def _target():
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    future = _executor.submit(_target)
    return future.result()


async def _fetch(source: str, config: Settings) -> list[Incident]:
    if source == "http":
        async with IncidentApiClient(
            base_url=config.api_base_url,
            api_key=config.api_key,
            rate_limit=config.rate_limit,
            timeout=config.request_timeout,
        ) as api:
            return await PipelineCoordinator.from_settings(api, config).run()
    return await PipelineCoordinator.from_settings(FakeIncidentApi(), config).run()


def format_table(incidents: list[Incident]) -> str:
    """Render incidents as a plain-text table."""
    if not incidents:
        return "No incidents."
    rows = [("PRIORITY", "DATETIME", "NAME", "LOCATION", "ID")]
    for incident in incidents:
        value = incident.to_dict()
        rows.append((
            value["priority_label"],
            str(value["datetime"]),
            value["name"],
            str(value["location_id"]),
            str(value["id"]),
        ))
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    return "\n".join(
        "  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
        for row in rows
    )


def cmd_list(args: argparse.Namespace) -> int:
    """Execute the list command.

    Returns:
        Exit code (0 for success, 1 for a failed run, 2 for an invalid
        option, 130 if interrupted)
    """
    overrides = {}
    if args.fan_out:
        overrides["fan_out"] = args.fan_out
    if args.timeout is not None:
        overrides["run_timeout"] = args.timeout
    try:
        config = Settings.model_validate({**settings.model_dump(), **overrides})
    except ValidationError as e:
        print(f"Error: invalid option: {e.errors()[0]['msg']}", file=sys.stderr)
        return 2

    logger.info(
        "Listing incidents (source=%s, fan_out=%s, timeout=%s)",
        args.source, config.fan_out, config.run_timeout,
    )

    try:
        incidents = _run_async(_fetch(args.source, config))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except PipelineError as e:
        logger.error("Incident run failed: %s", e, exc_info=True)
        print(f"Error: {e.kind.get_description()} ({e.kind.value})", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps([incident.to_dict() for incident in incidents], indent=2))
    else:
        print(format_table(incidents))
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Execute the version command."""
    print(f"incidentfeed v{__version__}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "list":
        return cmd_list(args)
    elif args.command == "version":
        return cmd_version(args)
    else:
        parser.print_help()
        return 0


def cli_entry() -> None:
    """Console script entry point for setuptools."""
    sys.exit(main())


if __name__ == "__main__":
    cli_entry()
