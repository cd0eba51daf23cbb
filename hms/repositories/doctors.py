"""Doctor store operations used by the scheduling core."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hms.models.doctors import doctors


class DoctorRepository:
    """Repository for doctor lookups and counts."""

    @staticmethod
    async def get_doctor(db: AsyncSession, doctor_id: UUID) -> dict | None:
        """Get a doctor by id."""
        result = await db.execute(select(doctors).where(doctors.c.id == doctor_id))
        row = result.mappings().first()
        return dict(row) if row else None

    @staticmethod
    async def count_doctors(db: AsyncSession) -> int:
        """Count all doctors."""
        result = await db.execute(select(func.count()).select_from(doctors))
        return result.scalar_one()
