"""FastAPI dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hms.database import get_session_factory
from hms.services.booking_service import BookingService
from hms.services.dashboard_service import DashboardService


async def get_actor_id(
    x_actor_id: Annotated[str, Header(description="ID of the user performing the request")],
) -> UUID:
    """
    Extract the acting user's ID from the X-Actor-ID header.

    Args:
        x_actor_id: Raw header value

    Returns:
        Actor ID

    Raises:
        HTTPException: If the header is not a valid UUID
    """
    try:
        return UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid actor ID format",
        ) from None


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_db(session_factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting a read session for the current request."""
    async with session_factory() as session:
        yield session


def get_booking_service(session_factory: SessionFactory) -> BookingService:
    """Build the booking service on the current session factory."""
    return BookingService(session_factory)


def get_dashboard_service(session_factory: SessionFactory) -> DashboardService:
    """Build the dashboard service on the current session factory."""
    return DashboardService(session_factory)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
ActorId = Annotated[UUID, Depends(get_actor_id)]
Bookings = Annotated[BookingService, Depends(get_booking_service)]
Dashboard = Annotated[DashboardService, Depends(get_dashboard_service)]
