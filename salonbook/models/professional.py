"""
Professional models - barbers/stylists, their weekly schedule, and the
services each one performs.

A professional with no active ProfessionalAvailability row for a weekday
does not work that day. There is no explicit day-off flag.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Boolean, Integer, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from salonbook.database import Base


class Professional(Base):
    __tablename__ = "professionals"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("businesses.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Buffer override - only honored when custom_buffer is set
    custom_buffer: Mapped[bool] = mapped_column(Boolean, default=False)
    buffer_minutes: Mapped[Optional[int]] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_professionals_business_id", "business_id"),
    )

    def __repr__(self) -> str:
        return f"<Professional {self.name} active={self.is_active}>"


class ProfessionalAvailability(Base):
    __tablename__ = "professional_availability"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    professional_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("professionals.id"), nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time: Mapped[str] = mapped_column(String(8), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(8), nullable=False)
    break_start: Mapped[Optional[str]] = mapped_column(String(8))
    break_end: Mapped[Optional[str]] = mapped_column(String(8))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint("professional_id", "day_of_week", name="uq_professional_availability_day"),
    )

    def __repr__(self) -> str:
        return f"<ProfessionalAvailability dow={self.day_of_week} {self.start_time}-{self.end_time}>"


class ProfessionalService(Base):
    __tablename__ = "professional_services"

    professional_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("professionals.id"), primary_key=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("services.id"), primary_key=True
    )
