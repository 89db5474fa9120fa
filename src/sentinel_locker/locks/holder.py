"""Holder record written into the sentinel file.

The record is informational only. Lock state is decided by the file's
existence and modification time; the content is never parsed to decide
whether a lock is held.
"""

from __future__ import annotations

import json
import os
import socket
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from sentinel_locker.core.constants import HOLDER_INFO_VERSION


def _utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class HolderInfo:
    """Serializable holder metadata for diagnostics."""

    lock_id: str
    pid: int
    host: str
    created_at: str
    version: int = HOLDER_INFO_VERSION

    @classmethod
    def for_current_process(cls) -> HolderInfo:
        return cls(
            lock_id=str(uuid.uuid4()),
            pid=os.getpid(),
            host=socket.gethostname(),
            created_at=_utcnow_iso(),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_bytes(self) -> bytes:
        return (json.dumps(self.to_dict(), sort_keys=True) + "\n").encode("utf-8")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HolderInfo | None:
        try:
            return cls(
                lock_id=str(data["lock_id"]),
                pid=int(data["pid"]),
                host=str(data.get("host", "")),
                created_at=str(data.get("created_at", "")),
                version=int(data.get("version", HOLDER_INFO_VERSION)),
            )
        except (KeyError, TypeError, ValueError):
            return None

    @classmethod
    def from_bytes(cls, payload: bytes) -> HolderInfo | None:
        try:
            data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(data, dict):
            return None
        return cls.from_dict(data)
