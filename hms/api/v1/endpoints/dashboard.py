"""Dashboard endpoints."""

from fastapi import APIRouter, status

from hms.dependencies import Dashboard
from hms.schemas.dashboard import DashboardSnapshot

router = APIRouter()


@router.get(
    "",
    response_model=DashboardSnapshot,
    status_code=status.HTTP_200_OK,
    tags=["Dashboard"],
    summary="Get dashboard snapshot",
)
async def get_dashboard(dashboard: Dashboard) -> DashboardSnapshot:
    """
    Get entity counts, upcoming appointments and recent activity.

    The snapshot is computed fresh on every call. If any part of it cannot
    be read the whole request fails with 503.

    Args:
        dashboard: Dashboard service

    Returns:
        Dashboard snapshot
    """
    return await dashboard.get_snapshot()
