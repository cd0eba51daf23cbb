"""Patient store operations used by the scheduling core."""

from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hms.models.patients import patients


class PatientRepository:
    """Repository for patient lookups and counts."""

    @staticmethod
    async def get_patient(db: AsyncSession, patient_id: UUID) -> dict | None:
        """Get a patient that has not been soft deleted."""
        stmt = select(patients).where(
            and_(
                patients.c.id == patient_id,
                patients.c.deleted_at.is_(None),
            )
        )
        result = await db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    @staticmethod
    async def count_patients(db: AsyncSession) -> int:
        """Count patients, excluding soft deleted ones."""
        stmt = select(func.count()).select_from(patients).where(patients.c.deleted_at.is_(None))
        result = await db.execute(stmt)
        return result.scalar_one()
