"""Per-doctor mutual exclusion for booking units of work."""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hms.config import settings

logger = structlog.get_logger()


def advisory_lock_key(doctor_id: UUID) -> int:
    """Map a doctor id onto the signed 64-bit key space of pg advisory locks."""
    return int.from_bytes(doctor_id.bytes[:8], "big", signed=True)


class DoctorLockManager:
    """
    Serializes conflict-check-then-write sequences per doctor.

    Inside one process every doctor gets an asyncio.Lock. Across processes
    sharing a PostgreSQL database the same doctors are also locked with
    transaction-scoped advisory locks, released on commit or rollback.
    Locks for several doctors are always taken in sorted order.
    """

    def __init__(self, use_advisory_locks: bool = True):
        """Initialize an empty lock table."""
        self.use_advisory_locks = use_advisory_locks
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._holders: dict[UUID, int] = defaultdict(int)

    @staticmethod
    def _ordered(doctor_ids: tuple[UUID | None, ...]) -> list[UUID]:
        return sorted({doctor_id for doctor_id in doctor_ids if doctor_id is not None}, key=str)

    def is_locked(self, doctor_id: UUID) -> bool:
        """Whether a local lock for the doctor is currently held."""
        lock = self._locks.get(doctor_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def _local(self, doctor_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(doctor_id, asyncio.Lock())
        self._holders[doctor_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._holders[doctor_id] -= 1
            if self._holders[doctor_id] == 0:
                del self._holders[doctor_id]
                self._locks.pop(doctor_id, None)

    @asynccontextmanager
    async def acquire(self, *doctor_ids: UUID | None) -> AsyncIterator[list[UUID]]:
        """
        Hold the in-process locks of the given doctors.

        Args:
            doctor_ids: Doctors whose schedules the caller will check or change

        Yields:
            The locked doctor ids in acquisition order
        """
        ordered = self._ordered(doctor_ids)
        async with AsyncExitStack() as stack:
            for doctor_id in ordered:
                await stack.enter_async_context(self._local(doctor_id))
            yield ordered

    async def acquire_advisory(self, db: AsyncSession, *doctor_ids: UUID | None) -> None:
        """
        Take transaction-scoped advisory locks when running on PostgreSQL.

        Must be called inside an open transaction; the locks are released by
        the database when that transaction ends.
        """
        if not self.use_advisory_locks or db.get_bind().dialect.name != "postgresql":
            return

        for doctor_id in self._ordered(doctor_ids):
            await db.execute(select(func.pg_advisory_xact_lock(advisory_lock_key(doctor_id))))
            logger.debug("doctor_advisory_lock_acquired", doctor_id=str(doctor_id))


# Process-wide lock table shared by all booking services
doctor_locks = DoctorLockManager(use_advisory_locks=settings.advisory_locks_enabled)
