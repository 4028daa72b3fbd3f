"""CLI entry point for magpie."""

import argparse
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from .config import load_config
from .errors import MagpieError
from .sync import Syncer

logger = logging.getLogger("magpie")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            log_data["message"] = str(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = str(log_data["exception"])
            return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def _make_syncer(args: argparse.Namespace) -> Syncer:
    config = load_config(args.config, getattr(args, "work_dir", None))
    return Syncer(config)


def cmd_init(args: argparse.Namespace) -> int:
    """Create the local state file if it does not exist."""
    syncer = _make_syncer(args)
    syncer.init()
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """Run one sync cycle."""
    syncer = _make_syncer(args)
    syncer.sync()
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show the state of the local replica."""
    syncer = _make_syncer(args)
    status = syncer.status()

    if getattr(args, "status_json", False):
        print(json.dumps(status, indent=2))
        return 0

    print(f"State:   {status['state_path']}")
    print(f"Cache:   {status['remote_cache_path']}")
    print(f"Remote:  {status['remote_url']}")
    print(f"Library: {status['work_dir']} ({status['total_entries']} entries)")

    sections = [
        ("Pending (in library, not on disk)", status["pending_materialize"]),
        ("Untracked (on disk, not in library)", status["local_only"]),
    ]
    for title, names in sections:
        if names:
            print()
            print(f"{title}:")
            for name in names:
                print(f"  {name}")

    return 0


def build_parser(command: str | None = None) -> argparse.ArgumentParser:
    """Build the argument parser.

    Args:
        command: Fixed command for the single-purpose entry points. When
            set, no subcommand is parsed.
    """
    parser = argparse.ArgumentParser(
        prog=f"magpie-{command}" if command else "magpie",
        description="Sync a library of immutable files with a remote replica",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML config file (default: environment only)",
    )
    parser.add_argument(
        "-C", "--work-dir",
        type=Path,
        default=None,
        help="Library directory (default: current directory)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    if command is not None:
        commands = {"init": cmd_init, "sync": cmd_sync, "status": cmd_status}
        parser.set_defaults(command=command, func=commands[command])
        return parser

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    init_parser = subparsers.add_parser("init", help="Create the local state file")
    init_parser.set_defaults(func=cmd_init)

    sync_parser = subparsers.add_parser("sync", help="Sync the library with the remote")
    sync_parser.set_defaults(func=cmd_sync)

    status_parser = subparsers.add_parser("status", help="Show the local replica")
    status_parser.add_argument(
        "--json",
        dest="status_json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    return parser


def main(argv: list[str] | None = None, command: str | None = None) -> int:
    """Main entry point."""
    parser = build_parser(command)
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_level, args.json)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except (MagpieError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        logger.debug("Traceback", exc_info=True)
        return 1


def main_init() -> int:
    """Entry point for magpie-init."""
    return main(command="init")


def main_sync() -> int:
    """Entry point for magpie-sync."""
    return main(command="sync")


if __name__ == "__main__":
    sys.exit(main())
