"""Runtime settings loaded from environment variables.

Priority: explicit ``environ`` mapping passed to load_settings(), then
os.environ, then the defaults below.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_STORAGE_BACKENDS = ("postgres", "memory")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Configuration for the reservation core.

    Attributes:
        database_url: libpq DSN or URL (required for the postgres backend).
        storage: Which store backs the manager.
        timezone: IANA zone whose calendar defines "today".
        lock_timeout_ms: Lock wait before the store reports a transient failure.
        max_attempts: Attempts for serializable operations on transient failure.
        log_level: Level of the ``campsite`` logger.
    """

    database_url: str | None = None
    storage: Literal["postgres", "memory"] = "postgres"
    timezone: str = "UTC"
    lock_timeout_ms: int = 5000
    max_attempts: int = 3
    log_level: str = "INFO"


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    Raises:
        ValueError: On an unknown backend, zone or log level, or a
            non-positive numeric value.
    """
    if environ is None:
        environ = os.environ

    storage = environ.get("CAMPSITE_STORAGE", "postgres").strip().lower()
    if storage not in _STORAGE_BACKENDS:
        raise ValueError(f"CAMPSITE_STORAGE must be one of {_STORAGE_BACKENDS}, got {storage!r}")

    tz_name = environ.get("CAMPSITE_TIMEZONE", "UTC").strip()
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"CAMPSITE_TIMEZONE is not a known zone: {tz_name!r}") from None

    log_level = environ.get("CAMPSITE_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"CAMPSITE_LOG_LEVEL must be one of {_LOG_LEVELS}, got {log_level!r}")

    return Settings(
        database_url=environ.get("DATABASE_URL") or None,
        storage=storage,  # type: ignore[arg-type]
        timezone=tz_name,
        lock_timeout_ms=_positive_int(environ, "CAMPSITE_LOCK_TIMEOUT_MS", 5000),
        max_attempts=_positive_int(environ, "CAMPSITE_MAX_ATTEMPTS", 3),
        log_level=log_level,
    )
