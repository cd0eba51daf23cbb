"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    Uuid,
)

from hms.models.base import UTCDateTime, metadata

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # References
    Column("patient_id", Uuid, ForeignKey("patients.id"), nullable=False, index=True),
    Column("doctor_id", Uuid, ForeignKey("doctors.id"), nullable=False),
    # Appointment details
    Column("kind", Text, nullable=False),
    Column("starts_at", UTCDateTime, nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    # Always starts_at + duration_minutes, kept for window queries
    Column("ends_at", UTCDateTime, nullable=False),
    Column("location", Text, nullable=False, server_default=""),
    Column("notes", Text, nullable=True),
    Column("patient_history", Text, nullable=True),
    # Status management
    Column("status", Text, nullable=False, server_default="scheduled"),
    # Audit fields
    Column("created_by", Uuid, nullable=False),
    Column("updated_by", Uuid, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Column("cancelled_at", UTCDateTime, nullable=True),
    # Constraints
    CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
    CheckConstraint("ends_at > starts_at", name="appointments_window_check"),
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "kind IN ('check-up', 'follow-up', 'consultation', 'procedure', 'emergency')",
        name="appointments_kind_check",
    ),
    Index("ix_appointments_doctor_window", "doctor_id", "starts_at", "ends_at"),
    Index("ix_appointments_status_starts_at", "status", "starts_at"),
)
