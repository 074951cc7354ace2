"""
Time helpers for the device view.

All internal timestamps are timezone-aware UTC datetimes or epoch seconds.
The API accepts ISO 8601 strings for range boundaries.
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Union


def utc_now(clock_value: Optional[float] = None) -> datetime:
    """Current time as an aware UTC datetime (or the given epoch seconds)."""
    if clock_value is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(clock_value, tz=timezone.utc)


def today(clock_value: Optional[float] = None) -> date:
    return utc_now(clock_value).date()


def today_start(clock_value: Optional[float] = None) -> datetime:
    """Midnight UTC of the current day."""
    return datetime.combine(today(clock_value), time.min, tzinfo=timezone.utc)


def to_iso(moment: datetime) -> str:
    """Format a datetime for the API, always in UTC with a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def day_bounds(day_from: date, day_to: date) -> tuple:
    """Inclusive API boundaries covering whole days (``T00:00:00``/``T23:59:59``)."""
    return f"{day_from.isoformat()}T00:00:00", f"{day_to.isoformat()}T23:59:59"


def parse_timestamp(value: Union[str, int, float, datetime]) -> datetime:
    """
    Parse a wire timestamp into an aware UTC datetime.

    Accepts ISO 8601 strings (``T`` or space separated, optional ``Z``),
    epoch seconds and datetimes. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_seconds_ago(seconds_ago: Optional[float]) -> str:
    """Human readable age, e.g. ``"5m ago"`` or ``"2h 10m ago"``."""
    if seconds_ago is None:
        return "Unknown"
    if seconds_ago < 60:
        return "just now"

    minutes = int(seconds_ago // 60)
    if minutes < 60:
        return f"{minutes}m ago"

    hours = minutes // 60
    remaining_mins = minutes % 60
    if hours < 24:
        return f"{hours}h {remaining_mins}m ago" if remaining_mins else f"{hours}h ago"

    days = hours // 24
    if days < 7:
        return f"{days}d ago"

    weeks = days // 7
    if weeks < 4:
        return f"{weeks}w ago"

    return f"{days // 30}mo ago"


def format_seconds_ago_short(seconds_ago: Optional[float]) -> str:
    """Compact age for badges: ``now``, ``5m``, ``3h``, ``2d``."""
    if seconds_ago is None:
        return "?"
    if seconds_ago < 60:
        return "now"

    minutes = int(seconds_ago // 60)
    if minutes < 60:
        return f"{minutes}m"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h"

    return f"{hours // 24}d"
