"""
Business model - a tenant (one salon or barbershop).
Operating hours and booking settings are JSONB so each tenant can be
configured from the back office without schema changes.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from salonbook.database import Base


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tz_name: Mapped[str] = mapped_column("timezone", String(64), default="America/Sao_Paulo")

    # {"monday": {"open": "09:00", "close": "18:00", "closed": false}, ...}
    business_hours: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    # buffer_minutes, slot_duration_minutes, max_advance_days
    booking_settings: Mapped[Optional[dict]] = mapped_column(JSONB, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    def hours_for(self, weekday_key: str) -> Optional[dict]:
        """Raw hours entry for a weekday key, or None when not configured."""
        return (self.business_hours or {}).get(weekday_key)

    def setting(self, key: str):
        return (self.booking_settings or {}).get(key)

    def __repr__(self) -> str:
        return f"<Business {self.name} tz={self.tz_name}>"
