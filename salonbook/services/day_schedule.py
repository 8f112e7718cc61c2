"""
Day schedule loader - feeds the constraint resolver from the repository.

Loads everything needed for a set of professionals on one tenant-local date
with one query per source (hours, weekly availability, occupancy), then
resolves each professional independently. A malformed row for one
professional becomes a failed ProfessionalOutcome; the others still resolve.
"""
import logging
from datetime import date
from typing import Optional

from salonbook.config import get_settings
from salonbook.models.business import Business
from salonbook.models.professional import Professional
from salonbook.services.constraints import (
    BusinessDay,
    Interval,
    WorkingDay,
    clip_to_day,
    effective_buffer,
    resolve_free_intervals,
)
from salonbook.services.schedule_repository import RepositoryError, ScheduleRepository
from salonbook.utils.time import ParseError, day_of_week, setting_minutes, weekday_key
from salonbook.utils.timezone import get_zoneinfo, local_day_bounds_utc

logger = logging.getLogger(__name__)


class ProfessionalOutcome:
    """Free intervals for one professional, or the error that prevented computing them."""

    def __init__(
        self,
        professional: Professional,
        intervals: Optional[list[Interval]] = None,
        error: Optional[Exception] = None,
    ):
        self.professional = professional
        self.intervals = intervals or []
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        status = "ok" if self.ok else f"error={self.error!r}"
        return f"<ProfessionalOutcome {self.professional.name} {status} intervals={self.intervals}>"


def business_buffer_minutes(business: Business) -> Optional[int]:
    return setting_minutes(business.setting("buffer_minutes"), "buffer_minutes")


async def load_day_outcomes(
    repo: ScheduleRepository,
    business: Business,
    professionals: list[Professional],
    day: date,
) -> list[ProfessionalOutcome]:
    """
    Resolve free intervals for each professional on `day`.

    Raises ParseError for malformed business hours and RepositoryError when a
    batch query fails; both affect every professional, so the caller decides.
    """
    if not professionals:
        return []

    business_day = BusinessDay.from_hours(business.hours_for(weekday_key(day)))
    if business_day.closed:
        return [ProfessionalOutcome(p, []) for p in professionals]

    tz = get_zoneinfo(business.tz_name)
    ids = [p.id for p in professionals]
    weekly = await repo.get_weekly_availability(ids, day_of_week(day))
    start_utc, end_utc = local_day_bounds_utc(day, tz)
    occupying = await repo.get_occupying_intervals(business.id, ids, start_utc, end_utc)

    business_wide = [o for o in occupying if o.professional_id is None]
    fallback_buffer = get_settings().default_buffer_minutes
    default_buffer = business_buffer_minutes(business)

    outcomes = []
    for professional in professionals:
        try:
            row = weekly.get(professional.id)
            working_day = WorkingDay.from_row(row) if row is not None else None
            buffer = effective_buffer(
                bool(professional.custom_buffer),
                professional.buffer_minutes,
                default_buffer,
                fallback=fallback_buffer,
            )
            occupied = []
            for item in business_wide + [o for o in occupying if o.professional_id == professional.id]:
                clipped = clip_to_day(item.start, item.end, day, tz)
                if clipped is not None:
                    occupied.append(clipped)
            intervals = resolve_free_intervals(business_day, working_day, occupied, buffer)
            outcomes.append(ProfessionalOutcome(professional, intervals))
        except (ParseError, RepositoryError) as e:
            logger.warning(
                "Skipping professional %s on %s: %s",
                str(professional.id)[:8], day.isoformat(), str(e),
                extra={"business_id": str(business.id), "professional_id": str(professional.id)},
            )
            outcomes.append(ProfessionalOutcome(professional, error=e))

    return outcomes
