"""Activity log table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, Table, Text, Uuid

from hms.models.base import UTCDateTime, metadata

# Append-only audit trail
activities = Table(
    "activities",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("activity_type", Text, nullable=False),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("occurred_at", UTCDateTime, nullable=False, index=True),
    CheckConstraint(
        "activity_type IN ('appointment', 'medical_record', 'patient', 'doctor')",
        name="activities_type_check",
    ),
)
