"""Activity log endpoints."""

from fastapi import APIRouter, Query, status

from hms.dependencies import DatabaseSession
from hms.schemas.activities import ActivityResponse
from hms.services.activity_service import ActivityService

router = APIRouter()


@router.get(
    "",
    response_model=list[ActivityResponse],
    status_code=status.HTTP_200_OK,
    tags=["Activities"],
    summary="List recent activities",
)
async def list_activities(
    db: DatabaseSession,
    limit: int = Query(10, ge=1, le=100),
) -> list[ActivityResponse]:
    """
    List the latest activity records, newest first.

    Args:
        db: Database session
        limit: Maximum number of records

    Returns:
        Recent activity records
    """
    return await ActivityService.list_recent(db, limit)
