"""
Slot generator - bookable start times for a service on a given date.

Free intervals from the constraint resolver are discretized at the tenant's
slot interval: candidates start at each interval's beginning and advance by
the step while the whole service still fits before the interval ends.
"""
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.config import get_settings
from salonbook.models.business import Business
from salonbook.schemas.availability import TimeSlotOption
from salonbook.services.constraints import Interval
from salonbook.services.day_schedule import load_day_outcomes
from salonbook.services.schedule_repository import RepositoryError, ScheduleRepository
from salonbook.utils.time import ParseError, minutes_to_time, setting_minutes
from salonbook.utils.timezone import get_zoneinfo, local_now

logger = logging.getLogger(__name__)


def generate_slot_minutes(intervals: Iterable[Interval], duration: int, step: int) -> list[int]:
    """Candidate start minutes, ascending, for a service of `duration` minutes."""
    if duration <= 0 or step <= 0:
        raise ValueError(f"duration and step must be positive, got {duration}/{step}")
    minutes = []
    for interval in sorted(intervals, key=lambda i: i.start):
        candidate = interval.start
        while candidate + duration <= interval.end:
            minutes.append(candidate)
            candidate += step
    return minutes


def slot_step(business: Business) -> int:
    step = setting_minutes(business.setting("slot_duration_minutes"), "slot_duration_minutes", minimum=1)
    if step is None:
        return get_settings().default_slot_interval_minutes
    return step


def within_booking_window(business: Business, target_date: date, today: date) -> bool:
    """Public booking accepts today through today + max_advance_days."""
    max_days = setting_minutes(business.setting("max_advance_days"), "max_advance_days")
    if max_days is None:
        max_days = get_settings().default_max_advance_days
    return today <= target_date <= today + timedelta(days=max_days)


def _drop_past(minutes: list[int], target_date: date, current: datetime) -> list[int]:
    if target_date != current.date():
        return minutes
    now_minutes = current.hour * 60 + current.minute
    return [m for m in minutes if m >= now_minutes]


async def get_available_slots(
    db: AsyncSession,
    business_id: uuid.UUID,
    professional_id: uuid.UUID,
    target_date: date,
    service_duration: int,
    now: Optional[datetime] = None,
) -> list[TimeSlotOption]:
    """Bookable start times for one professional on one date, ascending."""
    repo = ScheduleRepository(db)
    try:
        business = await repo.get_business(business_id)
        if business is None or not business.is_active:
            return []

        current = local_now(get_zoneinfo(business.tz_name), now)
        if not within_booking_window(business, target_date, current.date()):
            return []

        professional = await repo.get_professional(business_id, professional_id)
        if professional is None or not professional.is_active:
            return []

        outcome = (await load_day_outcomes(repo, business, [professional], target_date))[0]
        step = slot_step(business)
    except (RepositoryError, ParseError) as e:
        logger.error(
            "Slot listing failed for professional %s: %s", str(professional_id)[:8], str(e),
            extra={"business_id": str(business_id), "professional_id": str(professional_id)},
        )
        return []

    if not outcome.ok:
        return []

    minutes = generate_slot_minutes(outcome.intervals, service_duration, step)
    return [
        TimeSlotOption(time=minutes_to_time(m), available=True)
        for m in _drop_past(minutes, target_date, current)
    ]


async def get_available_slots_for_all_professionals(
    db: AsyncSession,
    business_id: uuid.UUID,
    professional_ids: list[uuid.UUID],
    target_date: date,
    service_duration: int,
    now: Optional[datetime] = None,
) -> list[str]:
    """
    Union of start times across professionals, ascending and deduplicated.

    Same answer as calling get_available_slots per professional, loaded with
    one query per data source instead of one round trip per professional.
    """
    if not professional_ids:
        return []

    repo = ScheduleRepository(db)
    try:
        business = await repo.get_business(business_id)
        if business is None or not business.is_active:
            return []

        current = local_now(get_zoneinfo(business.tz_name), now)
        if not within_booking_window(business, target_date, current.date()):
            return []

        professionals = await repo.get_active_professionals(business_id, professional_ids)
        outcomes = await load_day_outcomes(repo, business, professionals, target_date)
        step = slot_step(business)
    except (RepositoryError, ParseError) as e:
        logger.error(
            "Slot union failed for business %s: %s", str(business_id)[:8], str(e),
            extra={"business_id": str(business_id)},
        )
        return []

    union: set[int] = set()
    for outcome in outcomes:
        if not outcome.ok:
            continue
        minutes = generate_slot_minutes(outcome.intervals, service_duration, step)
        union.update(_drop_past(minutes, target_date, current))

    return [minutes_to_time(m) for m in sorted(union)]
