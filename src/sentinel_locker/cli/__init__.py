"""CLI module - Command-line interface components."""

from sentinel_locker.cli.main import main, parse_arguments

__all__ = ["main", "parse_arguments"]
