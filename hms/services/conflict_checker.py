"""Double-booking detection for doctor schedules."""

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from hms.core.exceptions import ConflictException
from hms.core.utils import to_utc
from hms.repositories.appointments import AppointmentRepository

logger = structlog.get_logger()


def appointment_window(starts_at: datetime, duration_minutes: int) -> tuple[datetime, datetime]:
    """Return the half-open window [start, start + duration) of an appointment."""
    return starts_at, starts_at + timedelta(minutes=duration_minutes)


def windows_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
) -> bool:
    """True interval intersection of two half-open windows."""
    return first_start < second_end and second_start < first_end


class ConflictChecker:
    """Finds appointments that would clash with a requested window."""

    @staticmethod
    async def find_overlapping(
        db: AsyncSession,
        doctor_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_id: UUID | None = None,
    ) -> list[dict]:
        """
        Find non-cancelled appointments of a doctor that intersect a window.

        Args:
            db: Session of the current unit of work
            doctor_id: Doctor whose schedule is checked
            window_start: Inclusive start of the requested window
            window_end: Exclusive end of the requested window
            exclude_id: Appointment to ignore, used when re-checking an update

        Returns:
            Overlapping appointment rows ordered by start
        """
        window_start, window_end = to_utc(window_start), to_utc(window_end)
        candidates = await AppointmentRepository.list_by_doctor_and_window(
            db, doctor_id, window_start, window_end, exclude_id=exclude_id
        )
        return [
            row
            for row in candidates
            if windows_overlap(row["starts_at"], row["ends_at"], window_start, window_end)
        ]

    @classmethod
    async def ensure_available(
        cls,
        db: AsyncSession,
        doctor_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_id: UUID | None = None,
    ) -> None:
        """
        Raise if the doctor already has an appointment in the window.

        Raises:
            ConflictException: If any non-cancelled appointment overlaps
        """
        overlapping = await cls.find_overlapping(
            db, doctor_id, window_start, window_end, exclude_id=exclude_id
        )
        if overlapping:
            conflicting_ids = [row["id"] for row in overlapping]
            logger.info(
                "appointment_conflict",
                doctor_id=str(doctor_id),
                window_start=window_start.isoformat(),
                window_end=window_end.isoformat(),
                conflicting_ids=[str(conflict_id) for conflict_id in conflicting_ids],
            )
            raise ConflictException(
                "Doctor is not available at the requested time",
                conflicting_ids=conflicting_ids,
            )
