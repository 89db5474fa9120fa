"""Sentinel-file locker.

A process holds the lock on ``path`` by having created the file exclusively,
and releases it by deleting the file. A lock file older than
``stale_after_ms`` is treated as absent and may be removed by any contender.

Every operation exists as a coroutine (``locked``, ``lock``, ``unlock``) and
as a blocking call (``locked_blocking``, ``lock_blocking``,
``unlock_blocking``). Both forms share one implementation: the ``_*_steps``
generators below, driven by the executors in ``sentinel_locker.locks.steps``.

Example:
    locker = Locker("/tmp/example.lock")
    await locker.lock()
    try:
        ...  # work with the resource held
    finally:
        await locker.unlock()
"""

from __future__ import annotations

import atexit
import logging
import os
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from sentinel_locker.core.config import LockerConfig
from sentinel_locker.core.exceptions import LockExhaustedError, LockHeldError
from sentinel_locker.core.logging import with_log_context
from sentinel_locker.locks.exit_hooks import ExitHooks
from sentinel_locker.locks.filesystem import FileStat, Filesystem, LocalFilesystem
from sentinel_locker.locks.holder import HolderInfo
from sentinel_locker.locks.scheduler import AsyncioScheduler, Scheduler
from sentinel_locker.locks.steps import Step, StepGenerator, run_async, run_blocking


def wall_clock_ms() -> float:
    return time.time() * 1000


class Locker:
    """Advisory lock backed by the existence of a sentinel file.

    Constructing a locker performs no filesystem mutation. Each successful
    acquisition registers a best-effort release with the exit hooks, so a
    lock still held when the interpreter exits is removed; a successful
    unlock withdraws it again.

    Args:
        path: Pathname of the sentinel file
        config: LockerConfig, or a mapping of its field names
        filesystem: Filesystem capability (default: LocalFilesystem)
        scheduler: Scheduler used for backoff delays (default: AsyncioScheduler)
        clock: Returns the current time in epoch milliseconds
        exit_hooks: Registry of process-exit finalizers (default: the atexit module)
        logger: Logger for diagnostics; records carry ``lock_path``
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        config: LockerConfig | Mapping[str, Any] | None = None,
        *,
        filesystem: Filesystem | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] | None = None,
        exit_hooks: ExitHooks | None = None,
        logger: logging.Logger | None = None,
    ):
        self._path = Path(path)
        if config is None:
            config = LockerConfig()
        elif isinstance(config, Mapping):
            config = LockerConfig(**config)
        self.config = config
        self.filesystem = filesystem or LocalFilesystem()
        self.scheduler = scheduler or AsyncioScheduler()
        self.clock = clock or wall_clock_ms
        self.logger = with_log_context(logger or logging.getLogger(__name__), lock_path=str(self._path))
        self.exit_hooks = atexit if exit_hooks is None else exit_hooks
        self.attempt_count = 0
        self._exit_registered = False

    @property
    def path(self) -> Path:
        return self._path

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self._path)!r})"

    # ------------------------------------------------------------------ checks

    async def locked(self) -> bool:
        """Return True if the sentinel file exists and is not stale."""
        return await run_async(self._locked_steps(), self.filesystem, self.scheduler)

    def locked_blocking(self) -> bool:
        """Blocking form of :meth:`locked`."""
        return run_blocking(self._locked_steps(), self.filesystem)

    # ------------------------------------------------------------- acquisition

    async def lock(self) -> None:
        """Acquire the lock, backing off while another holder is live.

        Raises:
            LockExhaustedError: ``max_retries`` backoff retries all met a live lock
            OSError: Any filesystem failure other than the expected conflicts
        """
        await run_async(self._lock_steps(can_defer=True), self.filesystem, self.scheduler)

    def lock_blocking(self) -> None:
        """Acquire the lock without suspending.

        Stale lock files are still overridden, but a live lock fails the call
        immediately; no retry budget applies.

        Raises:
            LockHeldError: The sentinel file exists and is not stale
            OSError: Any filesystem failure other than the expected conflicts
        """
        run_blocking(self._lock_steps(can_defer=False), self.filesystem)

    # ----------------------------------------------------------------- release

    async def unlock(self) -> None:
        """Delete the sentinel file; a missing file is not an error."""
        await run_async(self._unlock_steps(), self.filesystem, self.scheduler)

    def unlock_blocking(self) -> None:
        """Blocking form of :meth:`unlock`."""
        run_blocking(self._unlock_steps(), self.filesystem)

    def read_holder(self) -> HolderInfo | None:
        """Read the holder record for diagnostics, if available."""
        try:
            payload = self.filesystem.read(self._path)
        except OSError:
            return None
        return HolderInfo.from_bytes(payload)

    # ------------------------------------------------------- context managers

    async def __aenter__(self) -> Locker:
        await self.lock()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.unlock()

    def __enter__(self) -> Locker:
        self.lock_blocking()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unlock_blocking()

    # -------------------------------------------------------------- internals

    def _is_stale(self, stat: FileStat) -> bool:
        return self.clock() - stat.mtime_ms > self.config.stale_after_ms

    def _locked_steps(self) -> StepGenerator[bool]:
        try:
            stat = yield Step.stat(self._path)
        except FileNotFoundError:
            return False
        return not self._is_stale(stat)

    def _lock_steps(self, can_defer: bool) -> StepGenerator[None]:
        # Any exit from a lock() chain, cancellation included, resets the count.
        try:
            yield from self._acquire_steps(can_defer)
        finally:
            self.attempt_count = 0

    def _acquire_steps(self, can_defer: bool) -> StepGenerator[None]:
        while True:
            holder = HolderInfo.for_current_process()
            try:
                yield Step.create(self._path, holder.to_bytes())
            except FileExistsError as e:
                conflict = e
            else:
                self._register_exit()
                self.logger.debug("Acquired lock %s (lock_id=%s)", self._path, holder.lock_id)
                return

            try:
                stat = yield Step.stat(self._path)
            except FileNotFoundError:
                self.logger.debug("Lock %s released during conflict check; retrying", self._path)
                continue

            if self._is_stale(stat):
                self.logger.debug("Removing stale lock %s", self._path)
                try:
                    yield Step.delete(self._path)
                except FileNotFoundError:
                    pass
                continue

            if not can_defer:
                raise LockHeldError(self._path, conflict) from conflict

            if self.attempt_count >= self.config.max_retries:
                self.logger.debug("Giving up on lock %s after %d retries", self._path, self.attempt_count)
                raise LockExhaustedError(self._path, conflict, attempts=self.attempt_count) from conflict

            delay = self.config.delay_for(self.attempt_count)
            self.attempt_count += 1
            self.logger.debug("Lock %s is held; retry %d after %s", self._path, self.attempt_count, delay)
            yield Step.defer(delay)

    def _unlock_steps(self) -> StepGenerator[None]:
        try:
            yield Step.delete(self._path)
        except FileNotFoundError:
            self._unregister_exit()
            return
        self._unregister_exit()
        self.logger.debug("Released lock %s", self._path)

    def _register_exit(self) -> None:
        if not self._exit_registered:
            self.exit_hooks.register(self._release_at_exit)
            self._exit_registered = True

    def _unregister_exit(self) -> None:
        if self._exit_registered:
            self.exit_hooks.unregister(self._release_at_exit)
            self._exit_registered = False

    def _release_at_exit(self) -> None:
        # Already running as a finalizer.
        self._exit_registered = False
        try:
            self.unlock_blocking()
        except Exception:
            # Never escalate during interpreter shutdown.
            self.logger.error("Failed to remove lock file %s at exit", self._path, exc_info=True)
