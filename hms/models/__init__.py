"""Database models."""

from hms.models.activities import activities
from hms.models.appointments import appointments
from hms.models.base import metadata
from hms.models.doctors import doctors
from hms.models.medical_records import medical_records
from hms.models.patients import patients

__all__ = [
    "activities",
    "appointments",
    "doctors",
    "medical_records",
    "metadata",
    "patients",
]
