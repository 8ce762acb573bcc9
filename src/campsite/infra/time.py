"""Time utilities for consistent timestamp and calendar-day handling."""

from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def today_provider(tz_name: str) -> Callable[[], date]:
    """Build a zero-argument clock returning today's date in ``tz_name``."""
    zone = ZoneInfo(tz_name)
    return lambda: datetime.now(zone).date()
