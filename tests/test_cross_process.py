"""Tests for lock exclusion across separate processes."""

from __future__ import annotations

import multiprocessing
import os
import time
from pathlib import Path

import pytest

from sentinel_locker.core.exceptions import LockHeldError
from sentinel_locker.locks.exit_hooks import NullExitHooks
from sentinel_locker.locks.locker import Locker


def _holder_worker(lock_path: str, ready_path: str, hold_seconds: float) -> None:
    locker = Locker(lock_path, exit_hooks=NullExitHooks())
    locker.lock_blocking()
    Path(ready_path).write_text(str(os.getpid()), encoding="utf-8")
    time.sleep(hold_seconds)
    locker.unlock_blocking()


def _wait_for_ready(path: Path, timeout_seconds: float = 5.0) -> int:
    deadline = time.time() + timeout_seconds
    while time.time() < deadline:
        if path.exists() and path.read_text(encoding="utf-8").strip():
            return int(path.read_text(encoding="utf-8"))
        time.sleep(0.02)
    raise AssertionError(f"Timed out waiting for ready signal: {path}")


@pytest.fixture
def holder_process(tmp_path: Path):
    lock_path = tmp_path / "shared.lock"
    ready_path = tmp_path / "ready"
    process = multiprocessing.Process(target=_holder_worker, args=(str(lock_path), str(ready_path), 0.3))
    process.start()
    try:
        child_pid = _wait_for_ready(ready_path)
        yield lock_path, child_pid
    finally:
        process.join(timeout=5)
        if process.is_alive():
            process.terminate()


def test_lock_held_by_another_process_blocks_blocking_acquire(holder_process) -> None:
    lock_path, child_pid = holder_process
    locker = Locker(lock_path, exit_hooks=NullExitHooks())

    assert locker.locked_blocking() is True
    holder = locker.read_holder()
    assert holder is not None
    assert holder.pid == child_pid
    with pytest.raises(LockHeldError):
        locker.lock_blocking()


@pytest.mark.asyncio
async def test_async_lock_acquires_after_other_process_releases(holder_process) -> None:
    lock_path, child_pid = holder_process
    locker = Locker(lock_path, {"interval_ms": 20}, exit_hooks=NullExitHooks())

    await locker.lock()

    holder = locker.read_holder()
    assert holder is not None
    assert holder.pid == os.getpid() != child_pid
    await locker.unlock()
