"""Scheduler capability driving backoff delays on asyncio."""

from __future__ import annotations

import asyncio
from typing import Protocol

from sentinel_locker.core.backoff import Delay, DelayKind


class Scheduler(Protocol):
    """Suspends the current task until the requested point in time."""

    async def next_tick(self) -> None: ...

    async def next_io_boundary(self) -> None: ...

    async def sleep_ms(self, milliseconds: float) -> None: ...

    async def defer(self, delay: Delay) -> None: ...


class AsyncioScheduler:
    """Scheduler for the running asyncio event loop."""

    async def next_tick(self) -> None:
        await asyncio.sleep(0)

    async def next_io_boundary(self) -> None:
        # Timers are collected after the selector poll, so a zero-delay timer
        # resumes only once the loop has dispatched pending I/O events.
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        handle = loop.call_later(0, _resolve, waiter)
        try:
            await waiter
        finally:
            handle.cancel()

    async def sleep_ms(self, milliseconds: float) -> None:
        await asyncio.sleep(milliseconds / 1000)

    async def defer(self, delay: Delay) -> None:
        if delay.kind is DelayKind.NEXT_TICK:
            await self.next_tick()
        elif delay.kind is DelayKind.NEXT_IO_BOUNDARY:
            await self.next_io_boundary()
        else:
            await self.sleep_ms(delay.milliseconds)


def _resolve(waiter: asyncio.Future) -> None:
    if not waiter.done():
        waiter.set_result(None)
