"""I/O step protocol shared by the blocking and asyncio lock executors.

Locker operations are written once, as generators that yield :class:`Step`
requests and receive each step's result (or have its ``OSError`` thrown back
in). An executor performs the requested I/O and feeds the outcome back until
the generator returns; an executor that stops early closes the generator so
its cleanup runs. ``run_blocking`` performs steps on the calling thread;
``run_async`` awaits them and can honor ``DEFER`` steps through a scheduler.
"""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from sentinel_locker.core.backoff import Delay
from sentinel_locker.locks.filesystem import Filesystem
from sentinel_locker.locks.scheduler import Scheduler

T = TypeVar("T")


class Operation(Enum):
    CREATE = "create"
    STAT = "stat"
    DELETE = "delete"
    DEFER = "defer"


@dataclass(frozen=True)
class Step:
    """A single suspension point requested by an operation."""

    operation: Operation
    path: Path | None = None
    content: bytes = b""
    delay: Delay | None = None

    @classmethod
    def create(cls, path: Path, content: bytes) -> Step:
        return cls(Operation.CREATE, path=path, content=content)

    @classmethod
    def stat(cls, path: Path) -> Step:
        return cls(Operation.STAT, path=path)

    @classmethod
    def delete(cls, path: Path) -> Step:
        return cls(Operation.DELETE, path=path)

    @classmethod
    def defer(cls, delay: Delay) -> Step:
        return cls(Operation.DEFER, delay=delay)


StepGenerator = Generator[Step, Any, T]


class BlockingDeferError(RuntimeError):
    """Raised when a blocking executor is asked to suspend."""


def _perform_blocking(step: Step, filesystem: Filesystem) -> Any:
    if step.operation is Operation.CREATE:
        return filesystem.create_exclusive(step.path, step.content)
    if step.operation is Operation.STAT:
        return filesystem.stat(step.path)
    if step.operation is Operation.DELETE:
        return filesystem.delete(step.path)
    raise BlockingDeferError(f"cannot defer {step.delay} on a blocking call path")


async def _perform_async(step: Step, filesystem: Filesystem, scheduler: Scheduler) -> Any:
    if step.operation is Operation.CREATE:
        return await filesystem.acreate_exclusive(step.path, step.content)
    if step.operation is Operation.STAT:
        return await filesystem.astat(step.path)
    if step.operation is Operation.DELETE:
        return await filesystem.adelete(step.path)
    return await scheduler.defer(step.delay)


def run_blocking(steps: StepGenerator[T], filesystem: Filesystem) -> T:
    """Drive `steps` to completion on the calling thread."""
    value: Any = None
    error: OSError | None = None
    try:
        while True:
            try:
                step = steps.send(value) if error is None else steps.throw(error)
            except StopIteration as stop:
                return stop.value
            value, error = None, None
            try:
                value = _perform_blocking(step, filesystem)
            except OSError as e:
                error = e
    finally:
        steps.close()


async def run_async(steps: StepGenerator[T], filesystem: Filesystem, scheduler: Scheduler) -> T:
    """Drive `steps` to completion, suspending at every step."""
    value: Any = None
    error: OSError | None = None
    try:
        while True:
            try:
                step = steps.send(value) if error is None else steps.throw(error)
            except StopIteration as stop:
                return stop.value
            value, error = None, None
            try:
                value = await _perform_async(step, filesystem, scheduler)
            except OSError as e:
                error = e
    finally:
        # Abandoned chains (cancellation, non-OS errors) run their cleanup now.
        steps.close()
