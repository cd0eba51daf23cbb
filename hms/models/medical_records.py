"""Medical record model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, ForeignKey, String, Table, Text, Uuid, func

from hms.models.base import UTCDateTime, metadata

medical_records = Table(
    "medical_records",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "patient_id",
        Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="SET NULL"), nullable=True),
    Column("record_type", String(50), nullable=False),
    Column("recorded_at", UTCDateTime, nullable=False),
    Column("description", Text),
    Column("diagnosis", Text),
    Column("treatment", Text),
    Column("notes", Text),
    # Metadata
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
    Column("updated_at", UTCDateTime, nullable=False, server_default=func.now()),
    # Soft delete (healthcare compliance)
    Column("deleted_at", UTCDateTime, nullable=True),
)
