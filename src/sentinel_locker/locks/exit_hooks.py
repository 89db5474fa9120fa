"""Process-exit registries a Locker hands its release finalizer to.

The ``atexit`` module itself satisfies :class:`ExitHooks` and is the default.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class ExitHooks(Protocol):
    def register(self, fn: Callable[[], None]) -> Any: ...

    def unregister(self, fn: Callable[[], None]) -> Any: ...


class NullExitHooks:
    """Registry that never runs anything.

    For lockers whose lock is meant to outlive the process, such as a lock
    taken by one command and released by a later one.
    """

    def register(self, fn: Callable[[], None]) -> Callable[[], None]:
        return fn

    def unregister(self, fn: Callable[[], None]) -> None:
        pass
