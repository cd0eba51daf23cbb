"""Appointment store operations."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hms.models.appointments import appointments
from hms.models.doctors import doctors
from hms.models.patients import patients
from hms.schemas.appointments import AppointmentFilters, AppointmentStatus

ACTIVE_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)


class AppointmentRepository:
    """Repository for appointment database operations."""

    @staticmethod
    async def insert_appointment(db: AsyncSession, values: dict[str, Any]) -> dict:
        """Insert an appointment row and return it."""
        stmt = insert(appointments).values(**values).returning(appointments)
        result = await db.execute(stmt)
        return dict(result.mappings().one())

    @staticmethod
    async def get_appointment_by_id(
        db: AsyncSession,
        appointment_id: UUID,
        for_update: bool = False,
    ) -> dict | None:
        """Get an appointment by id, optionally locking the row."""
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    @staticmethod
    async def list_by_doctor_and_window(
        db: AsyncSession,
        doctor_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_id: UUID | None = None,
    ) -> list[dict]:
        """
        List non-cancelled appointments of a doctor intersecting a window.

        Intersection is half-open: an existing appointment ending exactly at
        window_start, or starting exactly at window_end, does not intersect.
        """
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
            appointments.c.starts_at < window_end,
            appointments.c.ends_at > window_start,
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = select(appointments).where(and_(*conditions)).order_by(appointments.c.starts_at)
        result = await db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @staticmethod
    async def update_appointment(
        db: AsyncSession,
        appointment_id: UUID,
        values: dict[str, Any],
    ) -> dict | None:
        """Write changed columns of an appointment and return the new row."""
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )
        result = await db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    @staticmethod
    async def count_appointments(db: AsyncSession) -> int:
        """Count all appointment records."""
        result = await db.execute(select(func.count()).select_from(appointments))
        return result.scalar_one()

    @staticmethod
    async def list_appointments(
        db: AsyncSession,
        filters: AppointmentFilters,
    ) -> tuple[int, list[dict]]:
        """
        List appointments matching the filters, latest start first.

        Args:
            db: Database session
            filters: Filter and pagination parameters

        Returns:
            Total number of matches and the rows of the requested page
        """
        conditions = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.from_date:
            conditions.append(appointments.c.starts_at >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.starts_at <= filters.to_date)

        count_stmt = select(func.count()).select_from(appointments).where(*conditions)
        total = (await db.execute(count_stmt)).scalar_one()

        stmt = (
            select(appointments)
            .where(*conditions)
            .order_by(appointments.c.starts_at.desc(), appointments.c.id)
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
        result = await db.execute(stmt)
        return total, [dict(row) for row in result.mappings().all()]

    @staticmethod
    async def list_upcoming_appointments(
        db: AsyncSession,
        window_start: datetime,
        window_end: datetime,
        limit: int,
    ) -> list[dict]:
        """
        List active appointments starting inside [window_start, window_end].

        Filtering, ordering, the limit and the name lookups all run in the
        database so the result size is bounded by the limit.
        """
        stmt = (
            select(
                appointments.c.id,
                patients.c.full_name.label("patient_name"),
                doctors.c.full_name.label("doctor_name"),
                appointments.c.starts_at,
                appointments.c.status,
            )
            .join(patients, appointments.c.patient_id == patients.c.id)
            .join(doctors, appointments.c.doctor_id == doctors.c.id)
            .where(
                and_(
                    appointments.c.status.in_(ACTIVE_STATUSES),
                    appointments.c.starts_at >= window_start,
                    appointments.c.starts_at <= window_end,
                )
            )
            .order_by(appointments.c.starts_at.asc(), appointments.c.id)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]
