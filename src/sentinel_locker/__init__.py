"""
sentinel-locker - Advisory cross-process locking with sentinel files

A process holds the lock by creating a file exclusively and releases it by
deleting the file. Lock files older than a configurable threshold are
considered stale and are overridden by contenders.
"""

from __future__ import annotations

from sentinel_locker.core.backoff import Delay, ExponentialBackoff
from sentinel_locker.core.config import LockerConfig
from sentinel_locker.core.exceptions import (
    ConfigurationError,
    LockerError,
    LockExhaustedError,
    LockHeldError,
)
from sentinel_locker.locks.exit_hooks import NullExitHooks
from sentinel_locker.locks.locker import Locker

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "Delay",
    "ExponentialBackoff",
    "LockExhaustedError",
    "LockHeldError",
    "Locker",
    "LockerConfig",
    "LockerError",
    "NullExitHooks",
    "__version__",
]
