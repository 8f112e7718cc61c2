"""
API router - aggregates all route modules.
"""
from fastapi import APIRouter
from salonbook.api.availability import router as availability_router
from salonbook.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(availability_router)
api_router.include_router(health_router)
