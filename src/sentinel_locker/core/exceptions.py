"""Custom exceptions for sentinel-locker.

Filesystem failures other than the expected "already exists" and "not found"
cases are never wrapped: they propagate to the caller as the original
``OSError``. The classes below cover the outcomes that are specific to the
locking protocol.
"""

from pathlib import Path


class LockerError(Exception):
    """Base exception for all sentinel-locker errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(LockerError):
    """Exception raised for invalid locker configuration.

    Examples:
        - Negative stale threshold or retry count
        - Non-numeric value in an environment override
    """

    def __init__(self, message: str, field: str | None = None, details: str | None = None):
        self.field = field
        super().__init__(message, details)


class LockHeldError(LockerError):
    """Raised when the sentinel file exists and is not stale.

    Attributes:
        path: Path of the sentinel file
        conflict: The ``FileExistsError`` raised by the exclusive create
    """

    def __init__(self, path: Path, conflict: FileExistsError | None = None, details: str | None = None):
        self.path = path
        self.conflict = conflict
        super().__init__(f"Lock is held: {path}", details)


class LockExhaustedError(LockHeldError):
    """Raised when the retry budget is consumed against a live lock.

    Attributes:
        attempts: Number of backoff retries made before giving up
    """

    def __init__(self, path: Path, conflict: FileExistsError | None = None, attempts: int = 0):
        self.attempts = attempts
        super().__init__(path, conflict, details=f"gave up after {attempts} retries")
