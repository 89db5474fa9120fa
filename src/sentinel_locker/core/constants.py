"""Constants and default values for sentinel-locker.

This module centralizes the timing defaults of the locking protocol and the
environment variable names used for overrides.
"""

# ==================== LOCK TIMING DEFAULTS ====================

# 15 seconds. Default backoff makes at most ~95 retries before a live lock goes stale.
DEFAULT_STALE_AFTER_MS: float = 15000

# Approximately 30 seconds of contention with the default backoff curve.
DEFAULT_MAX_RETRIES: int = 128

# Backoff ceiling in milliseconds; the default curve reaches it at retry 122.
DEFAULT_INTERVAL_MS: float = 500

# Exponent of the default backoff curve (delay = n ** exponent, in ms).
DEFAULT_BACKOFF_EXPONENT: float = 1.2945

# ==================== HOLDER RECORD ====================

HOLDER_INFO_VERSION: int = 1

# ==================== LOGGING DEFAULTS ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep

# ==================== ENVIRONMENT OVERRIDES ====================

DEFAULT_ENV_PREFIX: str = "SENTINEL_LOCK_"

# Environment variable suffix -> LockerConfig field
ENV_VAR_MAPPING: dict[str, str] = {
    "STALE_AFTER_MS": "stale_after_ms",
    "MAX_RETRIES": "max_retries",
    "INTERVAL_MS": "interval_ms",
}
