"""Activity log schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class ActivityType(str, Enum):
    """Activity category enumeration."""

    APPOINTMENT = "appointment"
    MEDICAL_RECORD = "medical_record"
    PATIENT = "patient"
    DOCTOR = "doctor"


class ActivityResponse(BaseModel):
    """Schema for an activity log entry."""

    id: UUID
    activity_type: ActivityType
    title: str
    description: str
    occurred_at: datetime

    model_config = {"from_attributes": True}
