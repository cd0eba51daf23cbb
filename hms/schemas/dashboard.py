"""Dashboard snapshot schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from hms.schemas.activities import ActivityResponse
from hms.schemas.appointments import AppointmentStatus


class DashboardStats(BaseModel):
    """Record counts at the time of the snapshot."""

    patients_count: int = Field(..., ge=0, examples=[100])
    doctors_count: int = Field(..., ge=0, examples=[20])
    appointments_count: int = Field(..., ge=0, examples=[500])
    medical_records_count: int = Field(..., ge=0, examples=[1200])


class UpcomingAppointment(BaseModel):
    """Upcoming appointment annotated with display names."""

    id: UUID
    patient_name: str
    doctor_name: str
    starts_at: datetime
    status: AppointmentStatus

    model_config = {"from_attributes": True}


class DashboardSnapshot(BaseModel):
    """Operational snapshot: counts, upcoming bookings and recent activity."""

    stats: DashboardStats
    upcoming_appointments: list[UpcomingAppointment]
    recent_activities: list[ActivityResponse]
    generated_at: datetime
