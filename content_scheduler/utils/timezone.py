"""
Timezone helpers for content scheduling.

Wall-clock times are resolved against the IANA database for the calendar date in
question, so the same local time maps to different UTC instants across DST changes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC = timezone.utc

COMMON_TIMEZONES = [
    {"value": "UTC", "label": "UTC (Coordinated Universal Time)"},
    {"value": "America/New_York", "label": "Eastern Time (ET)"},
    {"value": "America/Chicago", "label": "Central Time (CT)"},
    {"value": "America/Denver", "label": "Mountain Time (MT)"},
    {"value": "America/Los_Angeles", "label": "Pacific Time (PT)"},
    {"value": "America/Phoenix", "label": "Arizona (no DST)"},
    {"value": "America/Anchorage", "label": "Alaska Time (AKT)"},
    {"value": "Pacific/Honolulu", "label": "Hawaii Time (HST)"},
    {"value": "Europe/London", "label": "London (GMT/BST)"},
    {"value": "Europe/Paris", "label": "Central European Time"},
    {"value": "Asia/Tokyo", "label": "Japan Standard Time"},
    {"value": "Australia/Sydney", "label": "Australian Eastern Time"},
]


class InvalidTimezone(ValueError):
    def __init__(self, name: str):
        super().__init__(f"Unknown timezone: {name!r}")
        self.name = name


@dataclass(frozen=True)
class TimeUntil:
    days: int
    hours: int
    minutes: int
    seconds: int
    is_past: bool


def get_zone(name: str) -> ZoneInfo:
    if not name or not isinstance(name, str):
        raise InvalidTimezone(name)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise InvalidTimezone(name) from None


def is_valid_timezone(name: str) -> bool:
    try:
        get_zone(name)
    except InvalidTimezone:
        return False
    return True


def _parse(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    # fromisoformat only understands a trailing 'Z' on 3.11+
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Naive values coming back from the database are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def localize(value: str | datetime, timezone_name: str = "UTC") -> datetime:
    """
    Return an aware UTC datetime.

    Naive input is wall-clock time in `timezone_name`. Input that already carries an
    offset is an absolute instant and the zone is only validated.
    """
    zone = get_zone(timezone_name)
    dt = _parse(value)
    if dt.tzinfo is None:
        # fold=0: ambiguous times take the first occurrence, gap times the pre-gap offset
        dt = dt.replace(tzinfo=zone)
    return dt.astimezone(UTC)


def format_utc(dt: datetime) -> str:
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_utc(local_datetime: str | datetime, timezone_name: str) -> str:
    """'2026-02-08T14:30:00' in America/New_York -> '2026-02-08T19:30:00.000Z'"""
    return format_utc(localize(local_datetime, timezone_name))


def from_utc(utc_datetime: str | datetime, timezone_name: str) -> str:
    zone = get_zone(timezone_name)
    dt = ensure_utc(_parse(utc_datetime))
    return dt.astimezone(zone).strftime("%Y-%m-%dT%H:%M:%S")


def timezone_offset_string(timezone_name: str, at: datetime | None = None) -> str:
    zone = get_zone(timezone_name)
    at = ensure_utc(at) if at else datetime.now(UTC)
    offset = at.astimezone(zone).utcoffset() or timedelta(0)
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    hours, rem = divmod(abs(total), 3600)
    return f"{sign}{hours:02d}:{rem // 60:02d}"


def is_future_date(
    date: str | datetime, timezone_name: str = "UTC", now: datetime | None = None
) -> bool:
    now = ensure_utc(now) if now else datetime.now(UTC)
    return localize(date, timezone_name) > now


def get_time_until(target: str | datetime, now: datetime | None = None) -> TimeUntil:
    now = ensure_utc(now) if now else datetime.now(UTC)
    remaining = localize(target) - now

    if remaining < timedelta(0):
        return TimeUntil(days=0, hours=0, minutes=0, seconds=0, is_past=True)

    total = int(remaining.total_seconds())
    days, total = divmod(total, 86400)
    hours, total = divmod(total, 3600)
    minutes, seconds = divmod(total, 60)
    return TimeUntil(days=days, hours=hours, minutes=minutes, seconds=seconds, is_past=False)
