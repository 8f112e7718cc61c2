"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Mocks Redis.
"""
import pytest
import uuid
from datetime import date
from typing import Optional
from unittest.mock import AsyncMock, patch
from zoneinfo import ZoneInfo
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB

import salonbook.models  # noqa: F401 - registers every table on Base.metadata
from salonbook.database import Base
from salonbook.models.appointment import Appointment
from salonbook.models.business import Business
from salonbook.models.professional import Professional, ProfessionalAvailability, ProfessionalService
from salonbook.models.service import Service
from salonbook.models.time_block import TimeBlock
from salonbook.utils.time import time_to_minutes
from salonbook.utils.timezone import local_datetime_utc

SAO_PAULO = "America/Sao_Paulo"

OPEN_EVERY_DAY = {
    key: {"open": "09:00", "close": "18:00", "closed": False}
    for key in ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
}


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def mock_redis():
    """Mock for async Redis - prevents real Redis calls in tests."""
    with patch("salonbook.utils.redis.get_redis") as mock:
        redis_mock = AsyncMock()
        redis_mock.set = AsyncMock(return_value=True)
        redis_mock.eval = AsyncMock(return_value=1)
        redis_mock.ping = AsyncMock(return_value=True)
        mock.return_value = redis_mock
        yield redis_mock


class SalonSeeder:
    """Writes a tenant's schedule into the test database. Times are tenant-local HH:MM."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def business(
        self,
        hours: Optional[dict] = None,
        booking_settings: Optional[dict] = None,
        tz_name: str = SAO_PAULO,
        is_active: bool = True,
    ) -> Business:
        business = Business(
            name="Barbearia Central",
            tz_name=tz_name,
            business_hours=OPEN_EVERY_DAY if hours is None else hours,
            booking_settings={} if booking_settings is None else booking_settings,
            is_active=is_active,
        )
        self.db.add(business)
        await self.db.commit()
        return business

    async def professional(
        self,
        business: Business,
        name: str = "Ana",
        start: Optional[str] = "09:00",
        end: str = "18:00",
        break_start: Optional[str] = None,
        break_end: Optional[str] = None,
        days: tuple = (0, 1, 2, 3, 4, 5, 6),
        **kwargs,
    ) -> Professional:
        """Creates a professional working the same hours on `days` (0=Sunday). start=None seeds no rows."""
        professional = Professional(business_id=business.id, name=name, **kwargs)
        self.db.add(professional)
        await self.db.flush()
        if start is not None:
            for dow in days:
                self.db.add(ProfessionalAvailability(
                    professional_id=professional.id,
                    day_of_week=dow,
                    start_time=start,
                    end_time=end,
                    break_start=break_start,
                    break_end=break_end,
                    is_active=True,
                ))
        await self.db.commit()
        return professional

    async def service(
        self,
        business: Business,
        name: str = "Corte",
        duration: int = 30,
        price: float = 50.0,
        professionals: tuple = (),
        is_active: bool = True,
    ) -> Service:
        service = Service(
            business_id=business.id,
            name=name,
            duration_minutes=duration,
            price=price,
            is_active=is_active,
        )
        self.db.add(service)
        await self.db.flush()
        for professional in professionals:
            self.db.add(ProfessionalService(professional_id=professional.id, service_id=service.id))
        await self.db.commit()
        return service

    async def appointment(
        self,
        business: Business,
        professional: Professional,
        day: date,
        start: str,
        end: str,
        status: str = "confirmed",
    ) -> Appointment:
        tz = ZoneInfo(business.tz_name)
        start_minutes, end_minutes = time_to_minutes(start), time_to_minutes(end)
        appointment = Appointment(
            business_id=business.id,
            professional_id=professional.id,
            start_datetime=local_datetime_utc(day, start_minutes, tz),
            end_datetime=local_datetime_utc(day, end_minutes, tz),
            duration_minutes=end_minutes - start_minutes,
            status=status,
            customer_name="Cliente",
            source="manual",
        )
        self.db.add(appointment)
        await self.db.commit()
        return appointment

    async def block(
        self,
        business: Business,
        day: date,
        start: str,
        end: str,
        professional: Optional[Professional] = None,
        block_type: str = "personal",
    ) -> TimeBlock:
        tz = ZoneInfo(business.tz_name)
        block = TimeBlock(
            business_id=business.id,
            professional_id=professional.id if professional is not None else None,
            start_datetime=local_datetime_utc(day, time_to_minutes(start), tz),
            end_datetime=local_datetime_utc(day, time_to_minutes(end), tz),
            block_type=block_type,
        )
        self.db.add(block)
        await self.db.commit()
        return block


@pytest.fixture
def seed(db):
    return SalonSeeder(db)


@pytest.fixture
def unknown_id():
    return uuid.UUID("11111111-1111-1111-1111-111111111111")
