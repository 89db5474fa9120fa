"""Filesystem capability used by the locker.

Every operation reports failures as the ``OSError`` subclass the operating
system raised: ``FileExistsError`` for an exclusive create that lost the race,
``FileNotFoundError`` for a missing file, and anything else as-is. Each
operation has a blocking form and a coroutine form.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class FileStat:
    """The subset of ``os.stat_result`` the locker needs."""

    mtime_ms: float
    size: int

    @classmethod
    def from_stat_result(cls, result: os.stat_result) -> FileStat:
        return cls(mtime_ms=result.st_mtime_ns / 1_000_000, size=result.st_size)


class Filesystem(Protocol):
    """Backend abstraction for sentinel file operations."""

    def create_exclusive(self, path: Path, content: bytes) -> None:
        """Create `path` with `content`; raise FileExistsError if it exists."""

    def stat(self, path: Path) -> FileStat:
        """Return mtime and size of `path`."""

    def delete(self, path: Path) -> None:
        """Remove `path`."""

    def read(self, path: Path) -> bytes:
        """Return the content of `path`; used for diagnostics only."""

    async def acreate_exclusive(self, path: Path, content: bytes) -> None: ...

    async def astat(self, path: Path) -> FileStat: ...

    async def adelete(self, path: Path) -> None: ...


def _write_all(fd: int, payload: bytes) -> None:
    """Write complete payload to fd, handling short writes."""
    total_written = 0
    while total_written < len(payload):
        written = os.write(fd, payload[total_written:])
        if written <= 0:
            raise OSError("short write while persisting lock holder record")
        total_written += written


class LocalFilesystem:
    """Local filesystem backed by ``os`` calls.

    The exclusive create relies on ``O_CREAT | O_EXCL``, which is atomic on
    local filesystems and on NFSv3+. The coroutine forms run the blocking
    call in a worker thread so the event loop keeps running while the
    kernel does the I/O.
    """

    file_mode = 0o644

    def create_exclusive(self, path: Path, content: bytes) -> None:
        fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, self.file_mode)
        try:
            _write_all(fd, content)
        except OSError:
            # A half-written file would block everyone until it goes stale.
            os.close(fd)
            with contextlib.suppress(OSError):
                os.unlink(path)
            raise
        os.close(fd)

    def stat(self, path: Path) -> FileStat:
        return FileStat.from_stat_result(os.stat(path))

    def delete(self, path: Path) -> None:
        os.unlink(path)

    def read(self, path: Path) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    async def acreate_exclusive(self, path: Path, content: bytes) -> None:
        await asyncio.to_thread(self.create_exclusive, path, content)

    async def astat(self, path: Path) -> FileStat:
        return await asyncio.to_thread(self.stat, path)

    async def adelete(self, path: Path) -> None:
        await asyncio.to_thread(self.delete, path)
