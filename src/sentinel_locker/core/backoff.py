"""Backoff policies for lock contention retries.

A backoff policy maps the index of a contention retry (0-based) to a
:class:`Delay`, which the scheduler turns into a suspension of the
acquisition loop. Any callable with that shape can be supplied through
``LockerConfig.backoff_policy``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from sentinel_locker.core.constants import DEFAULT_BACKOFF_EXPONENT, DEFAULT_INTERVAL_MS


class DelayKind(Enum):
    """How the scheduler should defer the next attempt."""

    NEXT_TICK = "next_tick"  # Cooperative yield, no timer
    NEXT_IO_BOUNDARY = "next_io_boundary"  # After pending I/O callbacks have run
    AFTER = "after"  # Timed delay of `milliseconds`


@dataclass(frozen=True)
class Delay:
    """Scheduling request returned by a backoff policy."""

    kind: DelayKind
    milliseconds: float = 0.0

    @classmethod
    def next_tick(cls) -> Delay:
        return cls(DelayKind.NEXT_TICK)

    @classmethod
    def next_io_boundary(cls) -> Delay:
        return cls(DelayKind.NEXT_IO_BOUNDARY)

    @classmethod
    def after(cls, milliseconds: float) -> Delay:
        if milliseconds < 0:
            raise ValueError(f"delay must be non-negative, got {milliseconds}")
        return cls(DelayKind.AFTER, float(milliseconds))


class BackoffPolicy(Protocol):
    """Strategy interface: retry index -> scheduling delay."""

    def __call__(self, attempt: int) -> Delay:
        """Return the delay to apply before retry number `attempt`."""


@dataclass(frozen=True)
class ExponentialBackoff:
    """Default backoff curve.

    Attempt 0 yields to the next tick, attempt 1 waits for the next I/O
    boundary, and attempt n >= 2 sleeps ``min(interval_ms, n ** exponent)``
    milliseconds.

    Attributes:
        interval_ms: Ceiling for timed delays (default: 500)
        exponent: Growth exponent (default: 1.2945)
    """

    interval_ms: float = DEFAULT_INTERVAL_MS
    exponent: float = DEFAULT_BACKOFF_EXPONENT

    def __call__(self, attempt: int) -> Delay:
        if attempt == 0:
            return Delay.next_tick()
        if attempt == 1:
            return Delay.next_io_boundary()
        return Delay.after(min(self.interval_ms, attempt**self.exponent))

    def total_ms(self, retries: int) -> float:
        """Sum of timed delays over `retries` attempts; useful for sizing budgets."""
        return sum(self(n).milliseconds for n in range(retries))
