"""API v1 router configuration."""

from fastapi import APIRouter

from hms.api.v1.endpoints import activities, appointments, dashboard, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(activities.router, prefix="/activities", tags=["Activities"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
