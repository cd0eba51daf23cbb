"""Activity log service."""

from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from hms.repositories.activities import ActivityRepository
from hms.schemas.activities import ActivityResponse, ActivityType

logger = structlog.get_logger()


class ActivityService:
    """Appends audit entries inside the caller's unit of work."""

    @staticmethod
    async def record(
        db: AsyncSession,
        activity_type: ActivityType,
        title: str,
        description: str,
    ) -> ActivityResponse:
        """
        Append an activity record.

        The insert joins the caller's transaction, so it commits or rolls
        back together with the change it describes.

        Args:
            db: Session of the current unit of work
            activity_type: Category of the activity
            title: Short headline
            description: Human-readable details

        Returns:
            The stored activity record
        """
        row = await ActivityRepository.insert_activity(
            db,
            {
                "activity_type": activity_type.value,
                "title": title,
                "description": description,
                "occurred_at": datetime.now(UTC),
            },
        )
        logger.debug("activity_recorded", activity_type=activity_type.value, title=title)
        return ActivityResponse.model_validate(row)

    @staticmethod
    async def list_recent(db: AsyncSession, limit: int = 10) -> list[ActivityResponse]:
        """List the latest activity records, newest first."""
        rows = await ActivityRepository.list_recent_activity(db, limit)
        return [ActivityResponse.model_validate(row) for row in rows]
