"""
Availability and booking schemas - what the engine hands to the API/UI layer.
"""
import uuid
from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class ServiceSummary(BaseModel):
    id: uuid.UUID
    name: str
    duration_minutes: Optional[int] = None


class ProfessionalAvailableNow(BaseModel):
    """A professional who can take a walk-in starting now."""
    professional_id: uuid.UUID
    name: str
    avatar_url: Optional[str] = None
    free_from: datetime
    free_until: datetime
    free_minutes: int = Field(..., description="Minutes from now until the next commitment or end of day")
    services: list[ServiceSummary] = Field(default_factory=list)


class TimeSlotOption(BaseModel):
    time: str = Field(..., description="Start time, HH:MM tenant-local")
    available: bool = True


class ProfessionalSlotsResponse(BaseModel):
    professional_id: uuid.UUID
    date: date
    slots: list[TimeSlotOption]


class AnyProfessionalSlotsResponse(BaseModel):
    """Union of start times across professionals (a time appears once if anybody can take it)."""
    date: date
    slots: list[str]


class BookingRequest(BaseModel):
    professional_id: uuid.UUID
    service_id: uuid.UUID
    date: date
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    customer_name: str = Field(..., min_length=1, max_length=120)
    customer_phone: str = Field(..., min_length=8, max_length=30)
    customer_email: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    status: Literal["pending", "confirmed"] = "pending"


class BookingResult(BaseModel):
    success: bool
    appointment_id: Optional[uuid.UUID] = None
    error: Optional[str] = None
