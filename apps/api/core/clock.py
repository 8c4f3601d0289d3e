"""
Time helpers.

Timestamps are stored as naive UTC so they compare the same way on
Postgres and SQLite.
"""
from datetime import datetime, timezone, date
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "America/New_York"


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC (naive input is assumed UTC)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_zone(name: Optional[str]) -> ZoneInfo:
    """Resolve an IANA zone name, falling back to the product default."""
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


def local_today(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    now = now or utcnow()
    return now.replace(tzinfo=timezone.utc).astimezone(get_zone(tz_name)).date()
