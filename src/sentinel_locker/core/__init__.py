"""Core module - Foundation components with no internal dependencies.

This module provides the basic building blocks used throughout the package:
- Custom exceptions
- Configuration dataclasses
- Backoff policies
- Constants and defaults
"""

from sentinel_locker.core.backoff import (
    BackoffPolicy,
    Delay,
    DelayKind,
    ExponentialBackoff,
)
from sentinel_locker.core.config import LockerConfig, LogConfig
from sentinel_locker.core.constants import (
    DEFAULT_BACKOFF_EXPONENT,
    DEFAULT_INTERVAL_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_STALE_AFTER_MS,
)
from sentinel_locker.core.exceptions import (
    ConfigurationError,
    LockerError,
    LockExhaustedError,
    LockHeldError,
)

__all__ = [
    # Exceptions
    "LockerError",
    "ConfigurationError",
    "LockHeldError",
    "LockExhaustedError",
    # Config dataclasses
    "LockerConfig",
    "LogConfig",
    # Backoff
    "BackoffPolicy",
    "Delay",
    "DelayKind",
    "ExponentialBackoff",
    # Constants
    "DEFAULT_STALE_AFTER_MS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_INTERVAL_MS",
    "DEFAULT_BACKOFF_EXPONENT",
]
