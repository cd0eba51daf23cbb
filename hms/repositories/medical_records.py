"""Medical record store operations used by the scheduling core."""

from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hms.models.medical_records import medical_records


class MedicalRecordRepository:
    """Repository for medical record reads."""

    @staticmethod
    async def count_medical_records(db: AsyncSession) -> int:
        """Count medical records, excluding soft deleted ones."""
        stmt = (
            select(func.count())
            .select_from(medical_records)
            .where(medical_records.c.deleted_at.is_(None))
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def get_latest_for_patient(db: AsyncSession, patient_id: UUID) -> dict | None:
        """Get the most recent medical record of a patient."""
        stmt = (
            select(medical_records)
            .where(
                and_(
                    medical_records.c.patient_id == patient_id,
                    medical_records.c.deleted_at.is_(None),
                )
            )
            .order_by(medical_records.c.recorded_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None
