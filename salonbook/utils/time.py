"""
Wall-clock time arithmetic.

All schedule times are tenant-local "HH:MM" strings. The engine works in
minute offsets from local midnight (0-1439), with 1440 standing for the
midnight that ends the day.
"""
import re
from datetime import date
from typing import Optional

MINUTES_PER_DAY = 24 * 60

WEEKDAY_KEYS = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

# HH:MM, optionally followed by :SS as returned by Postgres time columns
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class ParseError(ValueError):
    """Raised when a time-of-day string or a numeric schedule setting is malformed."""
    pass


def time_to_minutes(value: str) -> int:
    """
    Parse "HH:MM" into minutes since midnight.

    >>> time_to_minutes("09:30")
    570
    """
    if not isinstance(value, str):
        raise ParseError(f"Expected HH:MM string, got {value!r}")
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ParseError(f"Invalid time of day: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ParseError(f"Time of day out of range: {value!r}")
    return hours * 60 + minutes


def end_of_day_minutes(value: str) -> int:
    """Parse a closing time; "00:00" closes at midnight (1440), not at 0."""
    minutes = time_to_minutes(value)
    return MINUTES_PER_DAY if minutes == 0 else minutes


def minutes_to_time(minutes: int) -> str:
    """
    Format minutes since midnight as zero-padded "HH:MM".

    >>> minutes_to_time(570)
    '09:30'
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ParseError(f"Expected integer minutes, got {minutes!r}")
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ParseError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def setting_minutes(value, name: str, minimum: int = 0) -> Optional[int]:
    """
    Coerce a whole-number booking setting stored as JSON (int or numeric string).
    None passes through so callers can apply their default.
    """
    if value is None:
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ParseError(f"Invalid {name}: {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid {name}: {value!r}") from e
    if number < minimum:
        raise ParseError(f"{name} must be at least {minimum}, got {number}")
    return number


def day_of_week(day: date) -> int:
    """Weekday index with 0 = Sunday, matching professional_availability rows."""
    return (day.weekday() + 1) % 7


def weekday_key(day: date) -> str:
    """Key into a business_hours dict ("sunday".."saturday")."""
    return WEEKDAY_KEYS[day_of_week(day)]
