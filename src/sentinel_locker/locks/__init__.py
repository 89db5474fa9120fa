"""Locking subsystem for cross-process coordination.

This package implements the sentinel-file locker behind small capability
interfaces (filesystem, scheduler, exit hooks) so both the asyncio and the blocking call
paths share one algorithm.
"""

from sentinel_locker.locks.exit_hooks import ExitHooks, NullExitHooks
from sentinel_locker.locks.filesystem import FileStat, Filesystem, LocalFilesystem
from sentinel_locker.locks.holder import HolderInfo
from sentinel_locker.locks.locker import Locker
from sentinel_locker.locks.scheduler import AsyncioScheduler, Scheduler

__all__ = [
    "AsyncioScheduler",
    "ExitHooks",
    "FileStat",
    "Filesystem",
    "HolderInfo",
    "LocalFilesystem",
    "Locker",
    "NullExitHooks",
    "Scheduler",
]
