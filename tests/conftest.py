"""Pytest configuration and fixtures for sentinel-locker tests"""

from __future__ import annotations

import asyncio
import errno
import os
from collections.abc import Callable
from pathlib import Path

import pytest

from sentinel_locker.core.backoff import Delay
from sentinel_locker.locks.filesystem import LocalFilesystem
from sentinel_locker.locks.locker import Locker

# Whole seconds, so mtimes written with os.utime compare exactly.
FAKE_EPOCH_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, now_ms: int = FAKE_EPOCH_MS):
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms

    def stamp(self, path: Path) -> None:
        """Set the mtime of `path` to the current fake time."""
        ns = int(self.now_ms) * 1_000_000
        os.utime(path, ns=(ns, ns))


class RecordingScheduler:
    """Scheduler that records delays and advances a fake clock instead of sleeping."""

    def __init__(self, clock: FakeClock | None = None, step_ms: int = 0):
        self.clock = clock
        self.step_ms = step_ms
        self.delays: list[Delay] = []

    async def next_tick(self) -> None:
        await asyncio.sleep(0)

    async def next_io_boundary(self) -> None:
        await asyncio.sleep(0)

    async def sleep_ms(self, milliseconds: float) -> None:
        await asyncio.sleep(0)

    async def defer(self, delay: Delay) -> None:
        self.delays.append(delay)
        if self.clock is not None:
            self.clock.advance(self.step_ms)
        await asyncio.sleep(0)


class FlakyFilesystem(LocalFilesystem):
    """Local filesystem whose operations can be made to fail on demand.

    Each ``fail_<op>`` list holds exceptions raised (in order) by the next
    calls to that operation before it falls back to the real behavior.
    """

    def __init__(self) -> None:
        self.fail_create: list[OSError] = []
        self.fail_stat: list[OSError] = []
        self.fail_delete: list[OSError] = []
        self.calls: list[str] = []

    def create_exclusive(self, path: Path, content: bytes) -> None:
        self.calls.append("create")
        if self.fail_create:
            raise self.fail_create.pop(0)
        super().create_exclusive(path, content)

    def stat(self, path: Path):
        self.calls.append("stat")
        if self.fail_stat:
            raise self.fail_stat.pop(0)
        return super().stat(path)

    def delete(self, path: Path) -> None:
        self.calls.append("delete")
        if self.fail_delete:
            raise self.fail_delete.pop(0)
        super().delete(path)


class RacingFilesystem(FlakyFilesystem):
    """Filesystem where another contender always deletes a stale lock first."""

    def delete(self, path: Path) -> None:
        self.calls.append("delete")
        os.unlink(path)
        raise FileNotFoundError(errno.ENOENT, "already removed")


class RecordingExitHooks:
    """In-memory stand-in for the atexit registry."""

    def __init__(self) -> None:
        self.hooks: list[Callable[[], None]] = []
        self.registrations = 0

    def register(self, fn: Callable[[], None]) -> Callable[[], None]:
        self.hooks.append(fn)
        self.registrations += 1
        return fn

    def unregister(self, fn: Callable[[], None]) -> None:
        self.hooks = [hook for hook in self.hooks if hook != fn]

    def run(self) -> None:
        """Run registered hooks last-in first-out, as atexit does."""
        for hook in reversed(self.hooks):
            hook()


@pytest.fixture
def lock_path(tmp_path: Path) -> Path:
    """Path of a sentinel file that does not exist yet"""
    return tmp_path / "test.lock"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def exit_hooks() -> RecordingExitHooks:
    """Collects exit finalizers instead of registering them with atexit"""
    return RecordingExitHooks()


@pytest.fixture
def recording_scheduler(clock: FakeClock) -> RecordingScheduler:
    """Scheduler that records delays; set `step_ms` to age the fake clock per delay"""
    return RecordingScheduler(clock)


@pytest.fixture
def flaky_filesystem() -> FlakyFilesystem:
    return FlakyFilesystem()


@pytest.fixture
def racing_filesystem() -> RacingFilesystem:
    return RacingFilesystem()


@pytest.fixture
def make_locker(lock_path: Path, clock: FakeClock, exit_hooks: RecordingExitHooks) -> Callable[..., Locker]:
    """Factory for lockers on `lock_path` with a fake clock and captured exit hooks"""

    def _make(config=None, **kwargs) -> Locker:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("exit_hooks", exit_hooks)
        return Locker(kwargs.pop("path", lock_path), config, **kwargs)

    return _make
