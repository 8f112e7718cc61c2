"""
"Who is free right now" - professionals who can start a walk-in at this instant.

For each active professional: resolve today's free intervals, find the one
containing the current minute, and report how long they stay free. The clock
is read once per call (or injected), converted to the tenant's timezone.
"""
import logging
import uuid
from datetime import datetime, time, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.config import get_settings
from salonbook.models.service import Service
from salonbook.schemas.availability import ProfessionalAvailableNow, ServiceSummary
from salonbook.services.constraints import containing_interval
from salonbook.services.day_schedule import ProfessionalOutcome, load_day_outcomes
from salonbook.services.schedule_repository import RepositoryError, ScheduleRepository
from salonbook.utils.time import ParseError
from salonbook.utils.timezone import get_zoneinfo, local_now

logger = logging.getLogger(__name__)


def _summarize(services: list[Service]) -> list[ServiceSummary]:
    return [
        ServiceSummary(id=s.id, name=s.name, duration_minutes=s.duration_minutes)
        for s in services
    ]


def rank_available_now(
    outcomes: list[ProfessionalOutcome],
    current: datetime,
    min_duration: int,
    service_id: Optional[uuid.UUID],
    service_map: dict[uuid.UUID, list[Service]],
    all_services: list[Service],
    services_limit: int,
) -> list[ProfessionalAvailableNow]:
    """
    Filter and rank resolved outcomes at `current` (tenant-local, aware).

    A professional without association rows offers every active service.
    Sorted by free_minutes descending; ties keep input order.
    """
    now_minutes = current.hour * 60 + current.minute
    midnight = datetime.combine(current.date(), time(0, 0), tzinfo=current.tzinfo)

    available = []
    for outcome in outcomes:
        if not outcome.ok:
            continue
        professional = outcome.professional

        interval = containing_interval(outcome.intervals, now_minutes)
        if interval is None:
            continue  # Mid-appointment, on break, blocked or off-shift

        free_minutes = interval.end - now_minutes
        if free_minutes < min_duration:
            continue

        if professional.id in service_map:
            offered = service_map[professional.id]
        else:
            offered = all_services
        if service_id is not None and not any(s.id == service_id for s in offered):
            continue

        available.append(ProfessionalAvailableNow(
            professional_id=professional.id,
            name=professional.name,
            avatar_url=professional.avatar_url,
            free_from=current,
            free_until=midnight + timedelta(minutes=interval.end),
            free_minutes=free_minutes,
            services=_summarize(offered[:services_limit]),
        ))

    available.sort(key=lambda p: p.free_minutes, reverse=True)
    return available


async def get_professionals_available_now(
    db: AsyncSession,
    business_id: uuid.UUID,
    service_id: Optional[uuid.UUID] = None,
    min_duration: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[ProfessionalAvailableNow]:
    """
    Professionals of a business free from now for at least `min_duration` minutes.

    Failures loading the tenant return an empty list (logged); failures for a
    single professional only drop that professional.
    """
    settings = get_settings()
    if min_duration is None:
        min_duration = settings.available_now_min_duration

    repo = ScheduleRepository(db)
    try:
        business = await repo.get_business(business_id)
        if business is None or not business.is_active:
            logger.info("Available-now requested for unknown business %s", str(business_id)[:8])
            return []

        professionals = await repo.get_active_professionals(business_id)
        if not professionals:
            return []

        current = local_now(get_zoneinfo(business.tz_name), now)
        outcomes = await load_day_outcomes(repo, business, professionals, current.date())
        service_map = await repo.get_professional_service_map(business_id)
        all_services = await repo.get_active_services(business_id)
    except (RepositoryError, ParseError) as e:
        logger.error(
            "Available-now failed for business %s: %s", str(business_id)[:8], str(e),
            extra={"business_id": str(business_id)},
        )
        return []

    result = rank_available_now(
        outcomes,
        current,
        min_duration,
        service_id,
        service_map,
        all_services,
        settings.available_now_services_limit,
    )
    logger.debug(
        "Available now: %d of %d professionals at %s",
        len(result), len(professionals), current.strftime("%H:%M"),
        extra={"business_id": str(business_id)},
    )
    return result


async def get_services_for_filter(
    db: AsyncSession,
    business_id: uuid.UUID,
) -> list[ServiceSummary]:
    """Active services of a business, by name, for the available-now service filter."""
    repo = ScheduleRepository(db)
    try:
        services = await repo.get_active_services(business_id)
    except RepositoryError as e:
        logger.error("Service list failed for business %s: %s", str(business_id)[:8], str(e))
        return []
    return _summarize(services)
