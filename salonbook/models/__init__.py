"""
Database models - import all models here so metadata.create_all sees every table.
"""
from salonbook.models.business import Business
from salonbook.models.professional import Professional, ProfessionalAvailability, ProfessionalService
from salonbook.models.service import Service
from salonbook.models.client import Client
from salonbook.models.appointment import Appointment
from salonbook.models.time_block import TimeBlock

__all__ = [
    "Business",
    "Professional",
    "ProfessionalAvailability",
    "ProfessionalService",
    "Service",
    "Client",
    "Appointment",
    "TimeBlock",
]
