"""
Public availability and booking endpoints.

Thin wrappers over the engine: resolve the service duration, call the
service layer, map engine exceptions to HTTP status codes.
"""
import logging
import uuid
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.database import get_db
from salonbook.schemas.availability import (
    AnyProfessionalSlotsResponse,
    BookingRequest,
    BookingResult,
    ProfessionalAvailableNow,
    ProfessionalSlotsResponse,
    ServiceSummary,
)
from salonbook.services.available_now import get_professionals_available_now, get_services_for_filter
from salonbook.services.booking import (
    BookingError,
    ProfessionalNotFound,
    ServiceNotFound,
    SlotUnavailable,
    create_appointment,
)
from salonbook.services.schedule_repository import RepositoryError, ScheduleRepository
from salonbook.services.slots import get_available_slots, get_available_slots_for_all_professionals
from salonbook.utils.locks import LockTimeoutError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/businesses/{business_id}", tags=["availability"])


async def _service_duration(db: AsyncSession, business_id: uuid.UUID, service_id: uuid.UUID) -> int:
    try:
        service = await ScheduleRepository(db).get_service(business_id, service_id)
    except RepositoryError as e:
        logger.error("Service lookup failed: %s", str(e), extra={"business_id": str(business_id)})
        raise HTTPException(status_code=503, detail="Service temporarily unavailable")
    if service is None or not service.is_active:
        raise HTTPException(status_code=404, detail="Service not found")
    return service.duration_minutes


@router.get("/available-now", response_model=list[ProfessionalAvailableNow])
async def available_now(
    business_id: uuid.UUID,
    service_id: Optional[uuid.UUID] = Query(default=None),
    min_duration: Optional[int] = Query(default=None, ge=1, le=1440),
    db: AsyncSession = Depends(get_db),
):
    """Professionals who can start a walk-in right now, most free time first."""
    return await get_professionals_available_now(
        db, business_id, service_id=service_id, min_duration=min_duration
    )


@router.get("/services", response_model=list[ServiceSummary])
async def list_services(
    business_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await get_services_for_filter(db, business_id)


@router.get(
    "/professionals/{professional_id}/slots",
    response_model=ProfessionalSlotsResponse,
)
async def professional_slots(
    business_id: uuid.UUID,
    professional_id: uuid.UUID,
    target_date: date = Query(..., alias="date"),
    service_id: uuid.UUID = Query(...),
    db: AsyncSession = Depends(get_db),
):
    duration = await _service_duration(db, business_id, service_id)
    slots = await get_available_slots(db, business_id, professional_id, target_date, duration)
    return ProfessionalSlotsResponse(
        professional_id=professional_id,
        date=target_date,
        slots=slots,
    )


@router.get("/slots", response_model=AnyProfessionalSlotsResponse)
async def any_professional_slots(
    business_id: uuid.UUID,
    target_date: date = Query(..., alias="date"),
    service_id: uuid.UUID = Query(...),
    professional_ids: Optional[list[uuid.UUID]] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Start times where at least one of the professionals (default: all active) is free."""
    duration = await _service_duration(db, business_id, service_id)
    if not professional_ids:
        try:
            professionals = await ScheduleRepository(db).get_active_professionals(business_id)
        except RepositoryError as e:
            logger.error("Professional lookup failed: %s", str(e), extra={"business_id": str(business_id)})
            raise HTTPException(status_code=503, detail="Service temporarily unavailable")
        professional_ids = [p.id for p in professionals]

    slots = await get_available_slots_for_all_professionals(
        db, business_id, professional_ids, target_date, duration
    )
    return AnyProfessionalSlotsResponse(date=target_date, slots=slots)


@router.post("/appointments", response_model=BookingResult, status_code=201)
async def book(
    business_id: uuid.UUID,
    payload: BookingRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        appointment_id = await create_appointment(
            db,
            business_id,
            payload.professional_id,
            payload.service_id,
            payload.date,
            payload.time,
            payload.customer_name,
            payload.customer_phone,
            customer_email=payload.customer_email,
            notes=payload.notes,
            status=payload.status,
        )
    except (ServiceNotFound, ProfessionalNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SlotUnavailable as e:
        raise HTTPException(status_code=409, detail=str(e))
    except LockTimeoutError:
        raise HTTPException(status_code=409, detail="Slot is being booked by someone else, try again")
    except BookingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RepositoryError as e:
        logger.error("Booking failed: %s", str(e), extra={"business_id": str(business_id)})
        raise HTTPException(status_code=503, detail="Service temporarily unavailable")

    return BookingResult(success=True, appointment_id=appointment_id)
