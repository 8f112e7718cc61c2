"""
TimeBlock model - ad-hoc unavailability (vacation, holiday, maintenance...).
professional_id NULL means the block applies to the whole business.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from salonbook.database import Base

BLOCK_TYPES = ("vacation", "holiday", "personal", "maintenance", "event")


class TimeBlock(Base):
    __tablename__ = "time_blocks"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("businesses.id"), nullable=False
    )
    professional_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("professionals.id")
    )
    start_datetime: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_datetime: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    block_type: Mapped[str] = mapped_column(String(20), default="personal")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_time_blocks_business_start", "business_id", "start_datetime"),
    )

    def __repr__(self) -> str:
        return f"<TimeBlock {self.block_type} {self.start_datetime}-{self.end_datetime}>"
