"""Tests for the dashboard aggregation service."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from hms.config import settings
from hms.core.exceptions import AggregationException
from hms.repositories.doctors import DoctorRepository
from hms.repositories.medical_records import MedicalRecordRepository
from hms.schemas.appointments import AppointmentCreate, AppointmentStatus
from hms.services.dashboard_service import DashboardService


@pytest.mark.asyncio
async def test_empty_snapshot(dashboard_service) -> None:
    snapshot = await dashboard_service.get_snapshot()

    assert snapshot.stats.patients_count == 0
    assert snapshot.stats.doctors_count == 0
    assert snapshot.stats.appointments_count == 0
    assert snapshot.stats.medical_records_count == 0
    assert snapshot.upcoming_appointments == []
    assert snapshot.recent_activities == []


@pytest.mark.asyncio
async def test_snapshot_counts(
    dashboard_service,
    booking_service,
    booking_data,
    patient_id,
    other_doctor_id,
    create_medical_record,
    actor_id,
) -> None:
    await create_medical_record(patient_id, datetime.now(UTC) - timedelta(days=3))
    await booking_service.create_appointment(AppointmentCreate(**booking_data()), actor_id)

    snapshot = await dashboard_service.get_snapshot()

    assert snapshot.stats.patients_count == 1
    assert snapshot.stats.doctors_count == 2
    assert snapshot.stats.appointments_count == 1
    assert snapshot.stats.medical_records_count == 1


@pytest.mark.asyncio
async def test_upcoming_appointments(
    dashboard_service, booking_service, booking_data, actor_id, tomorrow_at_nine
) -> None:
    """Only scheduled or confirmed bookings in the next week, soonest first, at most five."""
    ids = []
    for hour in (6, 5, 4, 3, 2, 1, 0):
        ids.append(
            await booking_service.create_appointment(
                AppointmentCreate(
                    **booking_data(starts_at=tomorrow_at_nine + timedelta(hours=hour))
                ),
                actor_id,
            )
        )
    soonest, second = ids[-1], ids[-2]
    await booking_service.cancel_appointment(soonest, actor_id)
    await booking_service.set_appointment_status(second, AppointmentStatus.COMPLETED, actor_id)
    await booking_service.create_appointment(
        AppointmentCreate(**booking_data(starts_at=tomorrow_at_nine + timedelta(days=10))),
        actor_id,
    )

    snapshot = await dashboard_service.get_snapshot()
    upcoming = snapshot.upcoming_appointments

    assert len(upcoming) == 5
    assert [item.starts_at for item in upcoming] == sorted(item.starts_at for item in upcoming)
    assert upcoming[0].starts_at == tomorrow_at_nine + timedelta(hours=2)
    assert soonest not in {item.id for item in upcoming}
    assert second not in {item.id for item in upcoming}
    assert upcoming[0].patient_name == "Jane Roe"
    assert upcoming[0].doctor_name == "Dr. John Doe"


@pytest.mark.asyncio
async def test_past_appointments_not_upcoming(
    dashboard_service, booking_service, booking_data, actor_id
) -> None:
    await booking_service.create_appointment(
        AppointmentCreate(**booking_data(starts_at=datetime.now(UTC) - timedelta(hours=3))),
        actor_id,
    )

    snapshot = await dashboard_service.get_snapshot()

    assert snapshot.upcoming_appointments == []
    assert snapshot.stats.appointments_count == 1


@pytest.mark.asyncio
async def test_recent_activities(
    dashboard_service, booking_service, booking_data, actor_id, tomorrow_at_nine
) -> None:
    for hour in range(12):
        await booking_service.create_appointment(
            AppointmentCreate(**booking_data(starts_at=tomorrow_at_nine + timedelta(hours=hour))),
            actor_id,
        )

    snapshot = await dashboard_service.get_snapshot()
    activities = snapshot.recent_activities

    assert len(activities) == 10
    occurred = [activity.occurred_at for activity in activities]
    assert occurred == sorted(occurred, reverse=True)


@pytest.mark.asyncio
async def test_failed_query_fails_snapshot(session_factory) -> None:
    """One failing read fails the whole snapshot and stops the others."""
    cancelled = asyncio.Event()

    async def slow_count(db) -> int:
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return 0

    failing = AsyncMock(side_effect=OperationalError("SELECT count(*)", {}, Exception()))
    service = DashboardService(session_factory, timeout=10)

    with (
        patch.object(DoctorRepository, "count_doctors", slow_count),
        patch.object(MedicalRecordRepository, "count_medical_records", failing),
    ):
        with pytest.raises(AggregationException) as exc_info:
            await service.get_snapshot()

    assert exc_info.value.status_code == 503
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_snapshot_timeout(session_factory) -> None:
    async def stalled(db) -> int:
        await asyncio.sleep(5)
        return 0

    service = DashboardService(session_factory, timeout=0.05)

    with patch.object(DoctorRepository, "count_doctors", stalled):
        with pytest.raises(AggregationException, match="timed out"):
            await service.get_snapshot()


@pytest.mark.asyncio
async def test_zero_limits_are_respected(
    session_factory, booking_service, booking_data, actor_id
) -> None:
    """An explicit limit of zero empties the lists instead of falling back to the defaults."""
    await booking_service.create_appointment(AppointmentCreate(**booking_data()), actor_id)
    service = DashboardService(session_factory, upcoming_limit=0, activity_limit=0)

    snapshot = await service.get_snapshot()

    assert service.upcoming_limit == 0
    assert snapshot.upcoming_appointments == []
    assert snapshot.recent_activities == []
    assert snapshot.stats.appointments_count == 1


def test_limits_default_to_settings(session_factory) -> None:
    service = DashboardService(session_factory)

    assert service.upcoming_limit == settings.dashboard_upcoming_limit
    assert service.upcoming_days == settings.dashboard_upcoming_days
    assert service.activity_limit == settings.dashboard_activity_limit
