"""
Appointment model - a booked service on a professional's calendar.
Occupies [start_datetime, end_datetime); cancelled and no_show rows never block.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Text, Integer, Float, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from salonbook.database import Base

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no_show")
NON_BLOCKING_STATUSES = ("cancelled", "no_show")


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("businesses.id"), nullable=False
    )
    professional_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("professionals.id"), nullable=False
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("services.id")
    )
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id")
    )

    # Customer as typed at booking time (client row may be missing)
    customer_name: Mapped[Optional[str]] = mapped_column(String(120))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(20))

    # Stored in UTC
    start_datetime: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_datetime: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending, confirmed, completed, cancelled, no_show
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")
    amount: Mapped[float] = mapped_column(Float, default=0.0)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    source: Mapped[str] = mapped_column(
        String(20), default="manual"
    )  # public_link, manual, whatsapp, api

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_appointments_business_id", "business_id"),
        Index("ix_appointments_professional_start", "professional_id", "start_datetime"),
        Index("ix_appointments_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Appointment {self.start_datetime} prof={self.professional_id} status={self.status}>"
