"""
Centralized Utilities for Time Handling in TutorStack.
Goal: consistent UTC storage and a single notion of "today".
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytz
from flask import current_app, has_app_context

MS_PER_DAY = 24 * 60 * 60 * 1000


def utcnow() -> datetime:
    """
    Get the current timezone-aware UTC datetime.
    Always use this instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as SQLite returns them) as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def elapsed_days(since: Optional[datetime], now: datetime) -> float:
    """Fractional days between two instants (0 when ``since`` is unknown)."""
    if since is None:
        return 0.0
    return (ensure_utc(now) - ensure_utc(since)).total_seconds() / 86400.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def whole_days_between(since: Optional[datetime], now: datetime) -> int:
    """Elapsed days rounded to the nearest whole day, never negative."""
    return max(0, round_half_up(elapsed_days(since, now)))


def get_system_timezone():
    tz_name = 'UTC'
    if has_app_context():
        tz_name = current_app.config.get('SYSTEM_TIMEZONE', 'UTC')
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def end_of_day(now: datetime, tz=None) -> datetime:
    """
    Last instant of the calendar day containing ``now`` in ``tz``
    (system timezone by default), returned in UTC.
    """
    tz = tz or get_system_timezone()
    local_now = ensure_utc(now).astimezone(tz)
    next_midnight = tz.localize(
        datetime(local_now.year, local_now.month, local_now.day) + timedelta(days=1)
    )
    return (next_midnight - timedelta(microseconds=1)).astimezone(timezone.utc)
