"""
Booking writer - inserts a public-link appointment after re-checking the slot.

The slot a customer picked was computed on an earlier request, so the day is
re-resolved under a per-(professional, date) lock right before the insert.
Two writers for the same professional and day are serialized by the lock;
without Redis the re-check alone still narrows the window.
"""
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.config import get_settings
from salonbook.models.appointment import Appointment
from salonbook.models.business import Business
from salonbook.models.professional import Professional
from salonbook.schemas.availability import BookingResult
from salonbook.services.constraints import fits
from salonbook.services.day_schedule import load_day_outcomes
from salonbook.services.schedule_repository import RepositoryError, ScheduleRepository
from salonbook.utils.locks import LockTimeoutError, professional_lock
from salonbook.utils.phone import mask_phone, normalize_phone_e164
from salonbook.utils.time import ParseError, time_to_minutes
from salonbook.utils.timezone import get_zoneinfo, local_datetime_utc, local_now

logger = logging.getLogger(__name__)

BOOKABLE_STATUSES = ("pending", "confirmed")


class BookingError(Exception):
    """Raised when a booking request cannot be honored."""
    pass


class SlotUnavailable(BookingError):
    """The requested start time no longer fits the professional's free time."""
    pass


class ServiceNotFound(BookingError):
    pass


class ProfessionalNotFound(BookingError):
    pass


async def _ensure_slot_free(
    repo: ScheduleRepository,
    business: Business,
    professional: Professional,
    target_date: date,
    start_minutes: int,
    duration: int,
    now: Optional[datetime],
) -> None:
    current = local_now(get_zoneinfo(business.tz_name), now)
    if target_date < current.date():
        raise SlotUnavailable(f"{target_date.isoformat()} is in the past")
    if target_date == current.date() and start_minutes < current.hour * 60 + current.minute:
        raise SlotUnavailable("Start time has already passed")

    try:
        outcome = (await load_day_outcomes(repo, business, [professional], target_date))[0]
    except ParseError as e:
        # Malformed business hours or booking_settings
        raise SlotUnavailable(f"Schedule unavailable: {e}") from e
    if not outcome.ok:
        raise SlotUnavailable(f"Schedule unavailable: {outcome.error}")
    if not fits(outcome.intervals, start_minutes, duration):
        raise SlotUnavailable("Slot is no longer available")


async def create_appointment(
    db: AsyncSession,
    business_id: uuid.UUID,
    professional_id: uuid.UUID,
    service_id: uuid.UUID,
    target_date: date,
    start_time: str,
    customer_name: str,
    customer_phone: str,
    customer_email: Optional[str] = None,
    notes: Optional[str] = None,
    status: str = "pending",
    source: str = "public_link",
    now: Optional[datetime] = None,
) -> uuid.UUID:
    """
    Book a service with a professional at `start_time` (HH:MM, tenant-local).

    Raises:
        BookingError: bad status, unknown business, bad time or phone
        ServiceNotFound / ProfessionalNotFound: not active in this business
        SlotUnavailable: the slot was taken or does not fit anymore
        LockTimeoutError: another booking held the professional's day too long
        RepositoryError: the database failed (session rolled back)
    """
    if status not in BOOKABLE_STATUSES:
        raise BookingError(f"Invalid status for a new booking: {status}")
    try:
        start_minutes = time_to_minutes(start_time)
    except ParseError as e:
        raise BookingError(str(e)) from e

    repo = ScheduleRepository(db)
    business = await repo.get_business(business_id)
    if business is None or not business.is_active:
        raise BookingError("Business not found")

    service = await repo.get_service(business_id, service_id)
    if service is None or not service.is_active:
        raise ServiceNotFound(f"Service {service_id} not found")

    professional = await repo.get_professional(business_id, professional_id)
    if professional is None or not professional.is_active:
        raise ProfessionalNotFound(f"Professional {professional_id} not found")

    phone = normalize_phone_e164(customer_phone, get_settings().default_phone_region)
    if phone is None:
        raise BookingError("Invalid phone number")

    duration = service.duration_minutes
    professional_name = professional.name
    tz = get_zoneinfo(business.tz_name)

    async with professional_lock(professional.id, target_date):
        try:
            await _ensure_slot_free(
                repo, business, professional, target_date, start_minutes, duration, now
            )

            client = await repo.find_or_create_client(
                business_id, customer_name.strip(), phone, customer_email, source
            )
            start_utc = local_datetime_utc(target_date, start_minutes, tz)
            appointment = Appointment(
                business_id=business_id,
                professional_id=professional.id,
                service_id=service.id,
                client_id=client.id,
                customer_name=customer_name.strip(),
                customer_phone=phone,
                start_datetime=start_utc,
                end_datetime=start_utc + timedelta(minutes=duration),
                duration_minutes=duration,
                status=status,
                payment_status="pending",
                amount=service.price or 0.0,
                notes=notes,
                source=source,
            )
            await repo.add_appointment(appointment)
            appointment_id = appointment.id
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info(
        "Appointment booked: %s %s with %s for %s",
        target_date.isoformat(), start_time, professional_name, mask_phone(phone),
        extra={
            "business_id": str(business_id),
            "professional_id": str(professional_id),
            "appointment_id": str(appointment_id),
        },
    )
    return appointment_id


async def book_appointment(
    db: AsyncSession,
    business_id: uuid.UUID,
    professional_id: uuid.UUID,
    service_id: uuid.UUID,
    target_date: date,
    start_time: str,
    customer_name: str,
    customer_phone: str,
    customer_email: Optional[str] = None,
    notes: Optional[str] = None,
    status: str = "pending",
    now: Optional[datetime] = None,
) -> BookingResult:
    """create_appointment for callers that want a result instead of exceptions."""
    try:
        appointment_id = await create_appointment(
            db,
            business_id,
            professional_id,
            service_id,
            target_date,
            start_time,
            customer_name,
            customer_phone,
            customer_email=customer_email,
            notes=notes,
            status=status,
            now=now,
        )
    except BookingError as e:
        logger.info(
            "Booking rejected: %s", str(e),
            extra={"business_id": str(business_id), "error_code": type(e).__name__},
        )
        return BookingResult(success=False, error=str(e))
    except LockTimeoutError as e:
        logger.warning(
            "Booking lock timed out: %s", str(e),
            extra={"business_id": str(business_id), "professional_id": str(professional_id)},
        )
        return BookingResult(success=False, error="Another booking is in progress, try again")
    except RepositoryError as e:
        logger.error(
            "Booking failed on the database: %s", str(e),
            extra={"business_id": str(business_id), "error_code": "RepositoryError"},
        )
        return BookingResult(success=False, error="Booking could not be saved")
    return BookingResult(success=True, appointment_id=appointment_id)
