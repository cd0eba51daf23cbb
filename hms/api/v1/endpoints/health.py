"""Health check endpoints."""

import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hms.config import settings
from hms.dependencies import DatabaseSession
from hms.services.booking_locks import doctor_locks

router = APIRouter()
logger = structlog.get_logger()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of the store and the booking guarantees it supports."""

    database: str
    database_dialect: str
    booking_locks: str
    booking_timeout_seconds: float
    dashboard_timeout_seconds: float


def booking_lock_mode(dialect: str) -> str:
    """
    Describe how double booking is prevented on the given dialect.

    Advisory locks only exist on PostgreSQL; elsewhere locks are held per
    process, which is safe only with a single worker.
    """
    if dialect == "postgresql" and doctor_locks.use_advisory_locks:
        return "advisory"
    return "in_process"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness check that does not touch the database."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check(db: DatabaseSession) -> DetailedHealthResponse:
    """
    Detailed health check of the scheduling store.

    Args:
        db: Database session

    Returns:
        Store reachability, dialect, booking lock mode and configured deadlines
    """
    dialect = db.get_bind().dialect.name
    try:
        await db.execute(text("SELECT 1"))
        db_healthy = True
    except SQLAlchemyError as e:
        logger.warning("health_database_unreachable", dialect=dialect, error=str(e))
        db_healthy = False

    return DetailedHealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        database_dialect=dialect,
        booking_locks=booking_lock_mode(dialect),
        booking_timeout_seconds=settings.booking_timeout_seconds,
        dashboard_timeout_seconds=settings.dashboard_timeout_seconds,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
