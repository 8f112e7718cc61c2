"""
Timezone utilities for tenant-local scheduling.
Appointments are stored in UTC; schedules and slots are tenant wall-clock.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def get_zoneinfo(timezone_str: Optional[str] = None) -> ZoneInfo:
    """Get ZoneInfo for a tenant, falling back to the configured default."""
    if timezone_str:
        try:
            return ZoneInfo(timezone_str)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using default", timezone_str)
    from salonbook.config import get_settings
    return ZoneInfo(get_settings().default_timezone)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo) and normalize aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    """Convert a stored/injected instant to tenant wall-clock."""
    return as_utc(value).astimezone(tz)


def local_now(tz: ZoneInfo, now: Optional[datetime] = None) -> datetime:
    """Current instant in tenant wall-clock. `now` overrides the clock for tests."""
    return to_local(now or datetime.now(timezone.utc), tz)


def local_day_bounds_utc(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC [start, end) covering one tenant-local calendar day."""
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def local_datetime_utc(day: date, minutes: int, tz: ZoneInfo) -> datetime:
    """UTC instant for a tenant-local date plus minute offset."""
    local = datetime.combine(day, time(0, 0), tzinfo=tz) + timedelta(minutes=minutes)
    return local.astimezone(timezone.utc)
