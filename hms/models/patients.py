"""Patient model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, Date, String, Table, Text, Uuid, func

from hms.models.base import UTCDateTime, metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Display name used by dashboards and activity descriptions
    Column("full_name", Text, nullable=False),
    Column("date_of_birth", Date),
    Column("gender", String(20)),
    Column("phone", String(20)),
    Column("email", Text),
    Column("address", Text),
    # Metadata
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
    Column("updated_at", UTCDateTime, nullable=False, server_default=func.now()),
    # Soft delete
    Column("deleted_at", UTCDateTime, nullable=True),
)
