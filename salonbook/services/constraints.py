"""
Constraint resolver - free time for one professional on one calendar day.

Combines business hours, the professional's weekly window and break, the
end-of-day buffer, appointments and time blocks into ordered free intervals
expressed as minute offsets from tenant-local midnight. Pure functions: no
I/O, no clock.
"""
from datetime import date, datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from salonbook.utils.time import MINUTES_PER_DAY, end_of_day_minutes, time_to_minutes
from salonbook.utils.timezone import to_local


FALLBACK_BUFFER_MINUTES = 60


class Interval:
    """Half-open minute interval [start, end)."""

    __slots__ = ("start", "end")

    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end

    @property
    def duration(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains_minute(self, minute: int) -> bool:
        return self.start <= minute < self.end

    def contains_span(self, start: int, duration: int) -> bool:
        return self.start <= start and start + duration <= self.end

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def __eq__(self, other) -> bool:
        if isinstance(other, Interval):
            return self.as_tuple() == other.as_tuple()
        if isinstance(other, tuple):
            return self.as_tuple() == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.as_tuple())

    def __repr__(self) -> str:
        return f"<Interval {self.start}-{self.end}>"


class BusinessDay:
    """Business operating hours for one weekday."""

    def __init__(self, open_minutes: int = 0, close_minutes: int = 0, closed: bool = False):
        self.open_minutes = open_minutes
        self.close_minutes = close_minutes
        self.closed = closed

    @classmethod
    def from_hours(cls, entry: Optional[dict]) -> "BusinessDay":
        """
        Build from a business_hours entry ({"open", "close", "closed"}).
        A missing entry or missing open/close means closed.
        Raises ParseError on malformed times.
        """
        if not entry or entry.get("closed"):
            return cls(closed=True)
        if not entry.get("open") or not entry.get("close"):
            return cls(closed=True)
        return cls(
            open_minutes=time_to_minutes(entry["open"]),
            close_minutes=end_of_day_minutes(entry["close"]),
        )

    def __repr__(self) -> str:
        if self.closed:
            return "<BusinessDay closed>"
        return f"<BusinessDay {self.open_minutes}-{self.close_minutes}>"


class WorkingDay:
    """A professional's window for one weekday, with optional break."""

    def __init__(
        self,
        start_minutes: int,
        end_minutes: int,
        break_start: Optional[int] = None,
        break_end: Optional[int] = None,
    ):
        self.start_minutes = start_minutes
        self.end_minutes = end_minutes
        self.break_start = break_start
        self.break_end = break_end

    @classmethod
    def from_row(cls, row) -> "WorkingDay":
        """Build from a ProfessionalAvailability row. Raises ParseError on malformed times."""
        break_start = break_end = None
        if row.break_start and row.break_end:
            break_start = time_to_minutes(row.break_start)
            break_end = time_to_minutes(row.break_end)
        return cls(
            start_minutes=time_to_minutes(row.start_time),
            end_minutes=end_of_day_minutes(row.end_time),
            break_start=break_start,
            break_end=break_end,
        )

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    def __repr__(self) -> str:
        return f"<WorkingDay {self.start_minutes}-{self.end_minutes} break={self.break_start}-{self.break_end}>"


def effective_buffer(
    custom_buffer: bool,
    professional_buffer: Optional[int],
    business_buffer: Optional[int],
    fallback: int = FALLBACK_BUFFER_MINUTES,
) -> int:
    """
    Buffer reserved before close: the professional's override when enabled
    and set, else the business default, else the fallback. Zero is a valid value.
    """
    if custom_buffer and professional_buffer is not None:
        return professional_buffer
    if business_buffer is not None:
        return business_buffer
    return fallback


def subtract(intervals: list[Interval], removed: Interval) -> list[Interval]:
    """Remove a half-open interval from an ordered list of intervals."""
    result = []
    for interval in intervals:
        if not interval.overlaps(removed):
            result.append(interval)
            continue
        if interval.start < removed.start:
            result.append(Interval(interval.start, removed.start))
        if removed.end < interval.end:
            result.append(Interval(removed.end, interval.end))
    return result


def resolve_free_intervals(
    business_day: BusinessDay,
    working_day: Optional[WorkingDay],
    occupied: Iterable[Interval],
    buffer_minutes: int,
) -> list[Interval]:
    """
    Free intervals for one professional on one day, ascending.

    1. Closed business → nothing, regardless of the personal schedule.
    2. No working day (no active availability row) → nothing.
    3. Window is the professional's hours intersected with business hours.
    4. The buffer comes off the end of the window once: the last start
       minute is min(profEnd, bizClose) - buffer. It is not re-applied
       after each appointment.
    5. The break is removed.
    6. Every appointment/block interval is removed (half-open: touching
       endpoints do not conflict).
    """
    if business_day.closed or working_day is None:
        return []

    window_start = max(working_day.start_minutes, business_day.open_minutes)
    window_end = min(working_day.end_minutes, business_day.close_minutes) - buffer_minutes
    if window_end <= window_start:
        return []

    free = [Interval(window_start, window_end)]

    if working_day.has_break:
        free = subtract(free, Interval(working_day.break_start, working_day.break_end))

    for busy in sorted(occupied, key=lambda i: i.start):
        if busy.end <= busy.start:
            continue
        free = subtract(free, busy)

    return [i for i in free if i.duration > 0]


def fits(intervals: Iterable[Interval], start: int, duration: int) -> bool:
    """True when [start, start + duration) lies inside one free interval."""
    return any(i.contains_span(start, duration) for i in intervals)


def containing_interval(intervals: Iterable[Interval], minute: int) -> Optional[Interval]:
    """The free interval that contains `minute`, if any."""
    for interval in intervals:
        if interval.contains_minute(minute):
            return interval
    return None


def clip_to_day(start: datetime, end: datetime, day: date, tz: ZoneInfo) -> Optional[Interval]:
    """
    Convert an occupying UTC range to minute offsets on a tenant-local day,
    clipped to [0, 1440]. Returns None when the range misses the day.
    """
    local_start = to_local(start, tz)
    local_end = to_local(end, tz)
    if local_end.date() < day or local_start.date() > day:
        return None

    if local_start.date() < day:
        start_minutes = 0
    else:
        start_minutes = local_start.hour * 60 + local_start.minute

    if local_end.date() > day:
        end_minutes = MINUTES_PER_DAY
    else:
        end_minutes = local_end.hour * 60 + local_end.minute
        # Round a partial trailing minute up so seconds never free a busy minute
        if local_end.second or local_end.microsecond:
            end_minutes += 1

    if end_minutes <= start_minutes:
        return None
    return Interval(start_minutes, end_minutes)
