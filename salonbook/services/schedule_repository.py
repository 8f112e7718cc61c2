"""
Schedule repository - the database queries the availability engine needs.

Read-only except for the two booking writes (client find-or-create and the
appointment insert). Every SQLAlchemy failure surfaces as RepositoryError so
callers can isolate it per professional instead of failing a whole listing.
"""
import logging
import uuid
from datetime import datetime
from typing import Iterable, Optional
from sqlalchemy import select, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salonbook.models.appointment import Appointment, NON_BLOCKING_STATUSES
from salonbook.models.business import Business
from salonbook.models.client import Client
from salonbook.models.professional import Professional, ProfessionalAvailability, ProfessionalService
from salonbook.models.service import Service
from salonbook.models.time_block import TimeBlock

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when an underlying schedule read or write fails."""
    pass


class OccupyingInterval:
    """An appointment or time block occupying [start, end) in UTC."""

    def __init__(
        self,
        professional_id: Optional[uuid.UUID],
        start: datetime,
        end: datetime,
        kind: str,
    ):
        self.professional_id = professional_id  # None = whole business
        self.start = start
        self.end = end
        self.kind = kind  # appointment, block

    def __repr__(self) -> str:
        return f"<OccupyingInterval {self.kind} prof={self.professional_id} {self.start}-{self.end}>"


class ScheduleRepository:
    """Query surface over one request-scoped AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalars(self, stmt) -> list:
        try:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(str(e)) from e

    async def _scalar_one_or_none(self, stmt):
        try:
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(str(e)) from e

    # -- tenant -------------------------------------------------------------

    async def get_business(self, business_id: uuid.UUID) -> Optional[Business]:
        return await self._scalar_one_or_none(
            select(Business).where(Business.id == business_id)
        )

    async def get_business_hours(self, business_id: uuid.UUID) -> tuple[dict, Optional[int]]:
        """Weekly hours keyed by weekday name, plus the business default buffer (if set)."""
        business = await self.get_business(business_id)
        if business is None:
            return {}, None
        return business.business_hours or {}, business.setting("buffer_minutes")

    # -- professionals ------------------------------------------------------

    async def get_active_professionals(
        self,
        business_id: uuid.UUID,
        professional_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> list[Professional]:
        stmt = select(Professional).where(
            and_(Professional.business_id == business_id, Professional.is_active == True)
        )
        if professional_ids is not None:
            ids = list(professional_ids)
            if not ids:
                return []
            stmt = stmt.where(Professional.id.in_(ids))
        return await self._scalars(stmt.order_by(Professional.name))

    async def get_professional(
        self, business_id: uuid.UUID, professional_id: uuid.UUID
    ) -> Optional[Professional]:
        return await self._scalar_one_or_none(
            select(Professional).where(
                and_(Professional.id == professional_id, Professional.business_id == business_id)
            )
        )

    async def get_weekly_availability(
        self, professional_ids: Iterable[uuid.UUID], day_of_week: int
    ) -> dict[uuid.UUID, ProfessionalAvailability]:
        """Active rows for one weekday, keyed by professional. Missing key = day off."""
        ids = list(professional_ids)
        if not ids:
            return {}
        rows = await self._scalars(
            select(ProfessionalAvailability).where(
                and_(
                    ProfessionalAvailability.professional_id.in_(ids),
                    ProfessionalAvailability.day_of_week == day_of_week,
                    ProfessionalAvailability.is_active == True,
                )
            )
        )
        return {row.professional_id: row for row in rows}

    # -- occupancy ----------------------------------------------------------

    async def get_occupying_intervals(
        self,
        business_id: uuid.UUID,
        professional_ids: Iterable[uuid.UUID],
        start_utc: datetime,
        end_utc: datetime,
    ) -> list[OccupyingInterval]:
        """
        Appointments (excluding cancelled/no_show) and time blocks overlapping
        [start_utc, end_utc). Business-wide blocks come back with professional_id=None.
        """
        ids = list(professional_ids)
        if not ids:
            return []

        appointments = await self._scalars(
            select(Appointment).where(
                and_(
                    Appointment.business_id == business_id,
                    Appointment.professional_id.in_(ids),
                    Appointment.status.notin_(NON_BLOCKING_STATUSES),
                    Appointment.start_datetime < end_utc,
                    Appointment.end_datetime > start_utc,
                )
            )
        )
        blocks = await self._scalars(
            select(TimeBlock).where(
                and_(
                    TimeBlock.business_id == business_id,
                    or_(TimeBlock.professional_id.is_(None), TimeBlock.professional_id.in_(ids)),
                    TimeBlock.start_datetime < end_utc,
                    TimeBlock.end_datetime > start_utc,
                )
            )
        )

        intervals = [
            OccupyingInterval(a.professional_id, a.start_datetime, a.end_datetime, "appointment")
            for a in appointments
        ]
        intervals.extend(
            OccupyingInterval(b.professional_id, b.start_datetime, b.end_datetime, "block")
            for b in blocks
        )
        return intervals

    # -- services -----------------------------------------------------------

    async def get_active_services(self, business_id: uuid.UUID) -> list[Service]:
        return await self._scalars(
            select(Service)
            .where(Service.business_id == business_id)
            .order_by(Service.name)
        )

    async def get_service(self, business_id: uuid.UUID, service_id: uuid.UUID) -> Optional[Service]:
        return await self._scalar_one_or_none(
            select(Service).where(
                and_(Service.id == service_id, Service.business_id == business_id)
            )
        )

    async def get_professional_service_map(
        self, business_id: uuid.UUID
    ) -> dict[uuid.UUID, list[Service]]:
        """
        Active services per professional from the association table.
        Every professional with association rows gets a key, even when all of
        their linked services are retired (empty list). Professionals without
        rows are absent; callers treat that as unrestricted.
        """
        try:
            result = await self.db.execute(
                select(ProfessionalService.professional_id, Service)
                .join(Service, Service.id == ProfessionalService.service_id)
                .where(Service.business_id == business_id)
                .order_by(Service.name)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            raise RepositoryError(str(e)) from e

        service_map: dict[uuid.UUID, list[Service]] = {}
        for professional_id, service in rows:
            offered = service_map.setdefault(professional_id, [])
            if service.is_active:
                offered.append(service)
        return service_map

    # -- booking writes -----------------------------------------------------

    async def find_or_create_client(
        self,
        business_id: uuid.UUID,
        name: str,
        phone: str,
        email: Optional[str] = None,
        source: str = "public_link",
    ) -> Client:
        """Look up a client by normalized phone within the business; create if missing."""
        client = await self._scalar_one_or_none(
            select(Client).where(and_(Client.business_id == business_id, Client.phone == phone))
        )
        if client is not None:
            return client

        client = Client(
            business_id=business_id,
            name=name,
            phone=phone,
            email=email,
            source=source,
        )
        try:
            self.db.add(client)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise RepositoryError(str(e)) from e
        return client

    async def add_appointment(self, appointment: Appointment) -> Appointment:
        try:
            self.db.add(appointment)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise RepositoryError(str(e)) from e
        return appointment
