"""Dashboard aggregation service."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hms.config import settings
from hms.core.exceptions import AggregationException
from hms.core.utils import to_utc
from hms.repositories.activities import ActivityRepository
from hms.repositories.appointments import AppointmentRepository
from hms.repositories.doctors import DoctorRepository
from hms.repositories.medical_records import MedicalRecordRepository
from hms.repositories.patients import PatientRepository
from hms.schemas.activities import ActivityResponse
from hms.schemas.dashboard import DashboardSnapshot, DashboardStats, UpcomingAppointment

logger = structlog.get_logger()

Query = Callable[[AsyncSession], Awaitable[Any]]


class DashboardService:
    """
    Builds the operational dashboard snapshot.

    The snapshot is assembled from independent read queries that run
    concurrently, each on its own session. All of them must succeed: the
    first failure cancels the ones still running and fails the whole call.
    Nothing is cached; every call re-issues every query.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
        upcoming_limit: int | None = None,
        upcoming_days: int | None = None,
        activity_limit: int | None = None,
    ):
        """Initialize service with a session factory and snapshot limits."""
        self.session_factory = session_factory
        self.timeout = settings.dashboard_timeout_seconds if timeout is None else timeout
        self.upcoming_limit = (
            settings.dashboard_upcoming_limit if upcoming_limit is None else upcoming_limit
        )
        self.upcoming_days = (
            settings.dashboard_upcoming_days if upcoming_days is None else upcoming_days
        )
        self.activity_limit = (
            settings.dashboard_activity_limit if activity_limit is None else activity_limit
        )

    def _queries(self, now: datetime) -> dict[str, Query]:
        window_end = now + timedelta(days=self.upcoming_days)
        return {
            "patients_count": PatientRepository.count_patients,
            "doctors_count": DoctorRepository.count_doctors,
            "appointments_count": AppointmentRepository.count_appointments,
            "medical_records_count": MedicalRecordRepository.count_medical_records,
            "upcoming_appointments": lambda db: AppointmentRepository.list_upcoming_appointments(
                db, now, window_end, self.upcoming_limit
            ),
            "recent_activities": lambda db: ActivityRepository.list_recent_activity(
                db, self.activity_limit
            ),
        }

    async def _run(self, name: str, query: Query) -> Any:
        async with self.session_factory() as db:
            try:
                return await query(db)
            except asyncio.CancelledError:
                logger.debug("dashboard_query_cancelled", query=name)
                raise
            except Exception as e:
                logger.warning("dashboard_query_failed", query=name, error=str(e))
                raise

    async def fan_out(self, queries: dict[str, Query]) -> dict[str, Any]:
        """
        Run the queries concurrently and collect their results by name.

        Raises:
            AggregationException: On the first failed query or on timeout
        """
        try:
            async with asyncio.timeout(self.timeout):
                async with asyncio.TaskGroup() as group:
                    tasks = {
                        name: group.create_task(self._run(name, query), name=f"dashboard:{name}")
                        for name, query in queries.items()
                    }
        except ExceptionGroup as eg:
            first = eg.exceptions[0]
            logger.error("dashboard_snapshot_failed", error=str(first), failures=len(eg.exceptions))
            raise AggregationException(f"Dashboard query failed: {first}") from first
        except TimeoutError as e:
            logger.error("dashboard_snapshot_timed_out", timeout=self.timeout)
            raise AggregationException("Dashboard queries timed out") from e

        return {name: task.result() for name, task in tasks.items()}

    async def get_snapshot(self, now: datetime | None = None) -> DashboardSnapshot:
        """
        Compute counts, upcoming appointments and recent activity.

        Args:
            now: Reference instant for the upcoming window, defaults to the current time

        Returns:
            Fresh dashboard snapshot

        Raises:
            AggregationException: If any of the underlying reads fails
        """
        now = to_utc(now) if now else datetime.now(UTC)
        results = await self.fan_out(self._queries(now))

        snapshot = DashboardSnapshot(
            stats=DashboardStats(
                patients_count=results["patients_count"],
                doctors_count=results["doctors_count"],
                appointments_count=results["appointments_count"],
                medical_records_count=results["medical_records_count"],
            ),
            upcoming_appointments=[
                UpcomingAppointment.model_validate(row) for row in results["upcoming_appointments"]
            ],
            recent_activities=[
                ActivityResponse.model_validate(row) for row in results["recent_activities"]
            ],
            generated_at=datetime.now(UTC),
        )

        logger.info(
            "dashboard_snapshot_built",
            appointments_count=snapshot.stats.appointments_count,
            upcoming=len(snapshot.upcoming_appointments),
            recent_activities=len(snapshot.recent_activities),
        )
        return snapshot
