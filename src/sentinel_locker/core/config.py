"""Configuration dataclasses for sentinel-locker.

These dataclasses centralize the timing options of a locker for type safety
and easy testing. They can be created directly in code, from command-line
arguments, or from environment variables (optionally loaded from a ``.env``
file).
"""

from __future__ import annotations

import argparse
import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from dotenv import find_dotenv, load_dotenv

from sentinel_locker.core.backoff import BackoffPolicy, Delay, ExponentialBackoff
from sentinel_locker.core.constants import (
    DEFAULT_ENV_PREFIX,
    DEFAULT_INTERVAL_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_STALE_AFTER_MS,
    ENV_VAR_MAPPING,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
)
from sentinel_locker.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _coerce_number(field_name: str, raw: Any, *, integer: bool = False) -> float | int:
    if isinstance(raw, bool):
        raise ConfigurationError(f"{field_name} must be a number", field=field_name, details=repr(raw))
    if integer and isinstance(raw, float) and not raw.is_integer():
        raise ConfigurationError(f"{field_name} must be a whole number", field=field_name, details=repr(raw))
    try:
        value = int(raw) if integer else float(raw)
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigurationError(f"{field_name} must be a number", field=field_name, details=repr(raw)) from e
    if isinstance(value, float) and not math.isfinite(value):
        raise ConfigurationError(f"{field_name} must be finite", field=field_name, details=repr(raw))
    if value < 0:
        raise ConfigurationError(f"{field_name} cannot be negative", field=field_name, details=repr(raw))
    return value


@dataclass
class LockerConfig:
    """Timing configuration for a Locker.

    Attributes:
        stale_after_ms: Age after which an existing lock file is ignored (default: 15000)
        max_retries: Contention retries before giving up (default: 128)
        interval_ms: Ceiling for the default backoff delay (default: 500)
        backoff_policy: Retry index -> Delay; when unset, ExponentialBackoff(interval_ms)
            is built from the current interval on every call
    """

    stale_after_ms: float = DEFAULT_STALE_AFTER_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    interval_ms: float = DEFAULT_INTERVAL_MS
    backoff_policy: BackoffPolicy | None = None

    def __post_init__(self) -> None:
        self.validate()

    def delay_for(self, attempt: int) -> Delay:
        """Backoff delay before contention retry `attempt` (0-based)."""
        if self.backoff_policy is None:
            return ExponentialBackoff(interval_ms=self.interval_ms)(attempt)
        return self.backoff_policy(attempt)

    def validate(self) -> None:
        """Normalize numeric fields, raising ConfigurationError on bad values."""
        self.stale_after_ms = _coerce_number("stale_after_ms", self.stale_after_ms)
        self.max_retries = _coerce_number("max_retries", self.max_retries, integer=True)
        self.interval_ms = _coerce_number("interval_ms", self.interval_ms)
        if self.backoff_policy is not None and not callable(self.backoff_policy):
            raise ConfigurationError("backoff_policy must be callable", field="backoff_policy")

    def to_dict(self) -> dict[str, Any]:
        return {
            "stale_after_ms": self.stale_after_ms,
            "max_retries": self.max_retries,
            "interval_ms": self.interval_ms,
        }

    @classmethod
    def from_env(
        cls,
        prefix: str = DEFAULT_ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
        *,
        dotenv: bool = True,
    ) -> LockerConfig:
        """Create configuration from environment variables.

        Variables are ``<prefix>STALE_AFTER_MS``, ``<prefix>MAX_RETRIES`` and
        ``<prefix>INTERVAL_MS``. When `environ` is not given, a ``.env`` file in
        the working directory is loaded first (existing variables win).
        """
        if environ is None:
            if dotenv and load_dotenv(find_dotenv(usecwd=True), override=False):
                logger.debug("Loaded .env file for locker configuration")
            environ = os.environ

        values: dict[str, Any] = {}
        for suffix, field_name in ENV_VAR_MAPPING.items():
            raw = environ.get(f"{prefix}{suffix}")
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()
        return cls(**values)

    @classmethod
    def from_args(cls, args: argparse.Namespace, base: LockerConfig | None = None) -> LockerConfig:
        """Create configuration from parsed command-line arguments.

        Options left unset on the command line fall back to `base`.
        """
        base = base or cls()
        stale_after_ms = getattr(args, "stale_after_ms", None)
        max_retries = getattr(args, "max_retries", None)
        interval_ms = getattr(args, "interval_ms", None)
        return cls(
            stale_after_ms=base.stale_after_ms if stale_after_ms is None else stale_after_ms,
            max_retries=base.max_retries if max_retries is None else max_retries,
            interval_ms=base.interval_ms if interval_ms is None else interval_ms,
        )


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level string (default: "INFO")
        log_format: "text" or "json" (default: "text")
        file_max_bytes: Maximum size per log file (default: 10MB)
        file_backup_count: Number of backup log files (default: 5)
    """

    level: str = "INFO"
    log_format: str = "text"
    file_max_bytes: int = LOG_FILE_MAX_BYTES
    file_backup_count: int = LOG_FILE_BACKUP_COUNT
