"""Command-line entry point for sentinel-locker."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import NoReturn

from sentinel_locker import __version__
from sentinel_locker.core.config import LockerConfig, LogConfig
from sentinel_locker.core.exceptions import ConfigurationError, LockHeldError
from sentinel_locker.core.logging import setup_logging
from sentinel_locker.locks.exit_hooks import NullExitHooks
from sentinel_locker.locks.locker import Locker

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

logger = logging.getLogger(__name__)


def _exit_error(msg: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Print an error message to stderr and exit."""
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(code)


def _non_negative_float(value: str) -> float:
    f = float(value)
    if f < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative, got {f}")
    return f


def _non_negative_int(value: str) -> int:
    i = int(value)
    if i < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative, got {i}")
    return i


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        prog="sentinel-locker",
        description="Advisory cross-process locking with sentinel files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show whether a lock is held, and by whom
  sentinel-locker status /tmp/nightly.lock

  # Acquire (with backoff) and release manually
  sentinel-locker acquire /tmp/nightly.lock
  sentinel-locker release /tmp/nightly.lock

  # Run a command while holding the lock
  sentinel-locker run /tmp/nightly.lock -- ./nightly-job.sh

  # Give up quickly on contention
  sentinel-locker --max-retries 0 acquire /tmp/nightly.lock

Environment overrides: SENTINEL_LOCK_STALE_AFTER_MS, SENTINEL_LOCK_MAX_RETRIES,
SENTINEL_LOCK_INTERVAL_MS (a .env file in the working directory is honored).
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--stale-after-ms",
        type=_non_negative_float,
        default=None,
        help="Age in milliseconds after which a lock file is ignored (default: 15000)",
    )
    parser.add_argument(
        "--max-retries",
        type=_non_negative_int,
        default=None,
        help="Backoff retries before giving up on a held lock (default: 128)",
    )
    parser.add_argument(
        "--interval-ms",
        type=_non_negative_float,
        default=None,
        help="Maximum backoff delay in milliseconds (default: 500)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: LOG_LEVEL env or WARNING)",
    )
    parser.add_argument("--log-format", choices=["text", "json"], default="text", help="Log output format")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to a rotating file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    status = subparsers.add_parser("status", help="Report whether the lock is held (exit 1 if held)")
    status.add_argument("path", type=Path)
    status.add_argument("--json", action="store_true", help="Print the result as JSON")

    acquire = subparsers.add_parser("acquire", help="Acquire the lock and leave it held")
    acquire.add_argument("path", type=Path)

    release = subparsers.add_parser("release", help="Remove the lock file")
    release.add_argument("path", type=Path)

    run = subparsers.add_parser("run", help="Run a command while holding the lock")
    run.add_argument("path", type=Path)
    run.add_argument("cmd", nargs=argparse.REMAINDER, help="Command to run (after --)")

    args = parser.parse_args(argv)
    if args.command == "run":
        if args.cmd and args.cmd[0] == "--":
            args.cmd = args.cmd[1:]
        if not args.cmd:
            parser.error("run requires a command after the lock path")
    return args


def _build_locker(args: argparse.Namespace, *, release_at_exit: bool = False) -> Locker:
    config = LockerConfig.from_args(args, base=LockerConfig.from_env())
    # Only `run` owns the lock for the lifetime of this process; `acquire`
    # hands it to a later `release`, and `status` must never remove it.
    exit_hooks = None if release_at_exit else NullExitHooks()
    return Locker(args.path, config, exit_hooks=exit_hooks)


def _cmd_status(args: argparse.Namespace) -> int:
    locker = _build_locker(args)
    is_locked = locker.locked_blocking()
    holder = locker.read_holder() if is_locked else None
    if args.json:
        print(json.dumps({"path": str(locker.path), "locked": is_locked, "holder": holder and holder.to_dict()}))
    else:
        print(f"{locker.path}: {'locked' if is_locked else 'unlocked'}")
        if holder is not None:
            print(f"  held by pid {holder.pid} on {holder.host} since {holder.created_at}")
    return EXIT_FAILURE if is_locked else EXIT_OK


def _cmd_acquire(args: argparse.Namespace) -> int:
    locker = _build_locker(args)
    asyncio.run(locker.lock())
    logger.info("Acquired %s", locker.path)
    return EXIT_OK


def _cmd_release(args: argparse.Namespace) -> int:
    locker = _build_locker(args)
    locker.unlock_blocking()
    logger.info("Released %s", locker.path)
    return EXIT_OK


async def _run_locked(locker: Locker, cmd: list[str]) -> int:
    async with locker:
        logger.info("Running %s with %s held", cmd[0], locker.path)
        completed = await asyncio.to_thread(subprocess.run, cmd, check=False)
    return completed.returncode


def _cmd_run(args: argparse.Namespace) -> int:
    locker = _build_locker(args, release_at_exit=True)
    try:
        return asyncio.run(_run_locked(locker, args.cmd))
    except FileNotFoundError as e:
        if e.filename == args.cmd[0]:
            _exit_error(f"command not found: {args.cmd[0]}")
        raise


COMMANDS = {
    "status": _cmd_status,
    "acquire": _cmd_acquire,
    "release": _cmd_release,
    "run": _cmd_run,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the script"""
    args = parse_arguments(argv)
    log_config = LogConfig(level="WARNING", log_format=args.log_format)
    setup_logging(args.log_level, log_config.log_format, args.log_file, config=log_config)

    try:
        return COMMANDS[args.command](args)
    except ConfigurationError as e:
        _exit_error(str(e), EXIT_CONFIG_ERROR)
    except LockHeldError as e:
        _exit_error(str(e))
    except OSError as e:
        _exit_error(f"{args.path}: {e}")


if __name__ == "__main__":
    sys.exit(main())
