"""UTC timezone enforcement and day-boundary helpers.

This module sets the TZ environment variable to UTC to ensure
consistent datetime behavior across all environments. All persisted
timestamps are naive UTC datetimes.
"""

import os
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

# Set UTC timezone for the entire application
os.environ["TZ"] = "UTC"


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage format)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_local_day(now: datetime, tz_name: str = "UTC") -> datetime:
    """Return local midnight of the day containing ``now``, as naive UTC.

    Args:
        now: Naive UTC datetime
        tz_name: IANA timezone that defines the "day" (e.g. "UTC", "America/New_York")
    """
    local = now.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def to_epoch_ms(value: datetime | None) -> int | None:
    """Convert a naive UTC datetime to epoch milliseconds (client wire format)."""
    if value is None:
        return None
    return int(value.replace(tzinfo=timezone.utc).timestamp() * 1000)


def format_remaining(remaining: timedelta) -> str:
    """Render a remaining duration as ``"{hours}h {minutes}m"`` (floored)."""
    total_seconds = max(int(remaining.total_seconds()), 0)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    return f"{hours}h {minutes}m"
