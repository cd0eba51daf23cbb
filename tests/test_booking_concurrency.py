"""Tests for concurrent booking against the same doctor."""

import asyncio
from datetime import timedelta
from uuid import UUID, uuid4

import pytest

from hms.core.exceptions import ConflictException
from hms.repositories.appointments import AppointmentRepository
from hms.schemas.appointments import AppointmentCreate, AppointmentUpdate
from hms.services.booking_locks import DoctorLockManager, advisory_lock_key


@pytest.mark.asyncio
async def test_racing_bookings_only_one_wins(
    booking_service, session_factory, booking_data, actor_id, tomorrow_at_nine
) -> None:
    """Overlapping bookings submitted at once never both commit."""
    requests = [
        AppointmentCreate(**booking_data(starts_at=tomorrow_at_nine + timedelta(minutes=offset)))
        for offset in (0, 5, 10, 15, 20)
    ]

    results = await asyncio.gather(
        *(booking_service.create_appointment(data, actor_id) for data in requests),
        return_exceptions=True,
    )

    created = [result for result in results if isinstance(result, UUID)]
    conflicts = [result for result in results if isinstance(result, ConflictException)]
    assert len(created) == 1
    assert len(conflicts) == 4

    async with session_factory() as db:
        assert await AppointmentRepository.count_appointments(db) == 1


@pytest.mark.asyncio
async def test_racing_non_overlapping_bookings_all_win(
    booking_service, session_factory, booking_data, actor_id, tomorrow_at_nine
) -> None:
    requests = [
        AppointmentCreate(**booking_data(starts_at=tomorrow_at_nine + timedelta(minutes=offset)))
        for offset in (0, 30, 60, 90)
    ]

    await asyncio.gather(*(booking_service.create_appointment(data, actor_id) for data in requests))

    async with session_factory() as db:
        assert await AppointmentRepository.count_appointments(db) == 4


@pytest.mark.asyncio
async def test_racing_moves_into_same_slot(
    booking_service, booking_data, actor_id, tomorrow_at_nine
) -> None:
    """Two appointments rescheduled into one free slot at once: one move fails."""
    first_id = await booking_service.create_appointment(
        AppointmentCreate(**booking_data()), actor_id
    )
    second_id = await booking_service.create_appointment(
        AppointmentCreate(**booking_data(starts_at=tomorrow_at_nine + timedelta(hours=1))),
        actor_id,
    )
    free_slot = AppointmentUpdate(starts_at=tomorrow_at_nine + timedelta(hours=3))

    results = await asyncio.gather(
        booking_service.update_appointment(first_id, free_slot, actor_id),
        booking_service.update_appointment(second_id, free_slot, actor_id),
        return_exceptions=True,
    )

    assert sum(isinstance(result, ConflictException) for result in results) == 1


@pytest.mark.asyncio
async def test_lock_manager_serializes_same_doctor() -> None:
    manager = DoctorLockManager(use_advisory_locks=False)
    doctor_id = uuid4()
    order: list[str] = []

    async def hold(name: str) -> None:
        async with manager.acquire(doctor_id):
            order.append(f"{name}:enter")
            await asyncio.sleep(0.01)
            order.append(f"{name}:exit")

    await asyncio.gather(hold("a"), hold("b"))

    assert order in (
        ["a:enter", "a:exit", "b:enter", "b:exit"],
        ["b:enter", "b:exit", "a:enter", "a:exit"],
    )
    assert not manager.is_locked(doctor_id)
    assert manager._locks == {}


@pytest.mark.asyncio
async def test_lock_manager_orders_and_deduplicates() -> None:
    manager = DoctorLockManager(use_advisory_locks=False)
    first, second = sorted([uuid4(), uuid4()], key=str)

    async with manager.acquire(second, None, first, second) as locked:
        assert locked == [first, second]
        assert manager.is_locked(first)
        assert manager.is_locked(second)

    assert not manager.is_locked(first)


def test_advisory_lock_key_is_signed_64_bit() -> None:
    doctor_id = UUID("ffffffff-ffff-ffff-0000-000000000000")

    assert advisory_lock_key(doctor_id) == -1
    assert -(2**63) <= advisory_lock_key(uuid4()) < 2**63
