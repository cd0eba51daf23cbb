"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentKind(str, Enum):
    """Appointment kind enumeration."""

    CHECK_UP = "check-up"
    FOLLOW_UP = "follow-up"
    CONSULTATION = "consultation"
    PROCEDURE = "procedure"
    EMERGENCY = "emergency"


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    patient_id: UUID
    doctor_id: UUID
    kind: AppointmentKind
    starts_at: datetime
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    location: str = Field(..., min_length=3, max_length=100)
    notes: str | None = Field(None, max_length=500)
    patient_history: str | None = Field(None, max_length=1000)


class AppointmentUpdate(BaseModel):
    """
    Schema for a partial appointment update.

    Only fields that are explicitly present in the payload are applied;
    omitted fields keep their stored values.
    """

    doctor_id: UUID | None = None
    kind: AppointmentKind | None = None
    starts_at: datetime | None = None
    duration_minutes: int | None = Field(None, gt=0, le=24 * 60)
    status: AppointmentStatus | None = None
    location: str | None = Field(None, min_length=3, max_length=100)
    notes: str | None = Field(None, max_length=500)
    patient_history: str | None = Field(None, max_length=1000)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    kind: AppointmentKind
    starts_at: datetime
    duration_minutes: int
    ends_at: datetime
    status: AppointmentStatus
    location: str
    notes: str | None = None
    patient_history: str | None = None
    created_by: UUID
    updated_by: UUID
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class PatientSummary(BaseModel):
    """Patient fields shown alongside an appointment."""

    id: UUID
    full_name: str
    date_of_birth: date | None = None
    gender: str | None = None
    phone: str | None = None
    email: str | None = None

    model_config = {"from_attributes": True}


class MedicalRecordSummary(BaseModel):
    """Most recent medical record of the patient."""

    id: UUID
    record_type: str
    recorded_at: datetime
    description: str | None = None
    diagnosis: str | None = None
    treatment: str | None = None
    notes: str | None = None

    model_config = {"from_attributes": True}


class AppointmentDetailResponse(BaseModel):
    """Appointment with the patient and their latest medical record."""

    appointment: AppointmentResponse
    patient: PatientSummary | None = None
    last_record: MedicalRecordSummary | None = None


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]
