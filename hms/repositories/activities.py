"""Activity log store operations."""

from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from hms.models.activities import activities


class ActivityRepository:
    """Repository for the append-only activity log."""

    @staticmethod
    async def insert_activity(db: AsyncSession, values: dict[str, Any]) -> dict:
        """Append an activity record."""
        stmt = insert(activities).values(**values).returning(activities)
        result = await db.execute(stmt)
        return dict(result.mappings().one())

    @staticmethod
    async def list_recent_activity(db: AsyncSession, limit: int) -> list[dict]:
        """List the most recent activity records, newest first."""
        stmt = (
            select(activities)
            .order_by(activities.c.occurred_at.desc(), activities.c.id)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]
