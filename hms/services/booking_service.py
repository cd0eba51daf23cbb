"""Appointment booking service for business logic."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hms.config import settings
from hms.core.exceptions import (
    AppException,
    ConflictException,
    ImmutableStateException,
    NotFoundException,
    TransactionException,
    ValidationException,
)
from hms.core.utils import to_utc
from hms.repositories.appointments import AppointmentRepository
from hms.repositories.doctors import DoctorRepository
from hms.repositories.medical_records import MedicalRecordRepository
from hms.repositories.patients import PatientRepository
from hms.schemas.activities import ActivityType
from hms.schemas.appointments import (
    AppointmentCreate,
    AppointmentDetailResponse,
    AppointmentFilters,
    AppointmentKind,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    MedicalRecordSummary,
    PatientSummary,
)
from hms.services.activity_service import ActivityService
from hms.services.booking_locks import DoctorLockManager, doctor_locks
from hms.services.conflict_checker import ConflictChecker, appointment_window
from hms.services.status_machine import (
    INITIAL_STATUS,
    ensure_mutable,
    parse_status,
    reenters_active_set,
    validate_transition,
)

logger = structlog.get_logger()

# Name of the PostgreSQL exclusion constraint installed by the migrations
NO_OVERLAP_CONSTRAINT = "appointments_no_overlap"

# Patch fields that may not be cleared
REQUIRED_FIELDS = ("doctor_id", "kind", "starts_at", "duration_minutes", "status", "location")


class BookingService:
    """
    Service for booking, changing and cancelling appointments.

    Every write operation is one unit of work: the doctor's schedule is
    locked, the conflict check runs, the appointment row and its activity
    record are written, and the transaction commits. Any failure rolls the
    whole unit back.
    """

    # Attempts at locking an appointment whose doctor is being reassigned
    MAX_LOCK_ATTEMPTS = 3

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lock_manager: DoctorLockManager | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize service with a unit-of-work factory.

        Args:
            session_factory: Factory producing one session per unit of work
            lock_manager: Per-doctor lock table, defaults to the process-wide one
            timeout: Deadline in seconds for each operation
        """
        self.session_factory = session_factory
        self.locks = lock_manager or doctor_locks
        self.timeout = settings.booking_timeout_seconds if timeout is None else timeout

    # ------------------------------------------------------------------
    # Unit of work plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _guarded(self, operation: str, timeout: float | None) -> AsyncIterator[None]:
        """Apply the deadline and translate store failures for one operation."""
        try:
            async with asyncio.timeout(self.timeout if timeout is None else timeout):
                yield
        except AppException:
            raise
        except TimeoutError as e:
            logger.warning("booking_transaction_timed_out", operation=operation)
            raise TransactionException(f"{operation} timed out and was rolled back") from e
        except IntegrityError as e:
            if NO_OVERLAP_CONSTRAINT in str(e.orig):
                logger.info("appointment_conflict_constraint", operation=operation)
                raise ConflictException("Doctor is not available at the requested time") from e
            logger.error("booking_transaction_failed", operation=operation, error=str(e))
            raise TransactionException(f"{operation} failed and was rolled back") from e
        except SQLAlchemyError as e:
            logger.error("booking_transaction_failed", operation=operation, error=str(e))
            raise TransactionException(f"{operation} failed and was rolled back") from e

    @asynccontextmanager
    async def _unit_of_work(self, *doctor_ids: UUID | None) -> AsyncIterator[AsyncSession]:
        """Lock the doctors, then open one transaction holding their advisory locks."""
        async with self.locks.acquire(*doctor_ids):
            async with self.session_factory() as db:
                async with db.begin():
                    await self.locks.acquire_advisory(db, *doctor_ids)
                    yield db

    async def _current_doctor_id(self, appointment_id: UUID) -> UUID:
        async with self.session_factory() as db:
            current = await AppointmentRepository.get_appointment_by_id(db, appointment_id)
        if current is None:
            raise NotFoundException("Appointment not found")
        return current["doctor_id"]

    @asynccontextmanager
    async def _locked_appointment(
        self,
        appointment_id: UUID,
        *extra_doctor_ids: UUID | None,
    ) -> AsyncIterator[tuple[AsyncSession, dict]]:
        """
        Open a unit of work holding the lock of the appointment's doctor.

        The doctor is read before locking, so the row is re-read under the
        lock and the attempt repeated if a concurrent update reassigned it.
        """
        for _ in range(self.MAX_LOCK_ATTEMPTS):
            doctor_id = await self._current_doctor_id(appointment_id)
            async with self._unit_of_work(doctor_id, *extra_doctor_ids) as db:
                current = await AppointmentRepository.get_appointment_by_id(
                    db, appointment_id, for_update=True
                )
                if current is None:
                    raise NotFoundException("Appointment not found")
                if current["doctor_id"] == doctor_id:
                    yield db, current
                    return
            logger.info("appointment_reassigned_while_locking", appointment_id=str(appointment_id))

        raise TransactionException("Appointment changed doctor concurrently; nothing was applied")

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_booking_fields(
        kind: Any,
        starts_at: datetime | None,
        duration_minutes: Any,
    ) -> None:
        try:
            AppointmentKind(kind)
        except ValueError:
            allowed = ", ".join(k.value for k in AppointmentKind)
            raise ValidationException(
                f"Invalid appointment kind '{kind}'. Allowed values: {allowed}"
            ) from None

        if starts_at is None:
            raise ValidationException("Appointment start time is required")

        if (
            isinstance(duration_minutes, bool)
            or not isinstance(duration_minutes, int)
            or duration_minutes <= 0
        ):
            raise ValidationException("Duration must be a positive number of minutes")

    @staticmethod
    async def _ensure_patient(db: AsyncSession, patient_id: UUID) -> dict:
        patient = await PatientRepository.get_patient(db, patient_id)
        if patient is None:
            raise ValidationException(f"Patient {patient_id} does not exist")
        return patient

    @staticmethod
    async def _ensure_doctor(db: AsyncSession, doctor_id: UUID) -> dict:
        doctor = await DoctorRepository.get_doctor(db, doctor_id)
        if doctor is None:
            raise ValidationException(f"Doctor {doctor_id} does not exist")
        return doctor

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_appointment(
        self,
        data: AppointmentCreate,
        actor_id: UUID,
        timeout: float | None = None,
    ) -> UUID:
        """
        Book a new appointment.

        Args:
            data: Appointment creation data
            actor_id: User performing the booking
            timeout: Deadline override in seconds

        Returns:
            ID of the created appointment

        Raises:
            ValidationException: If the request is malformed or references
                an unknown patient or doctor
            ConflictException: If the doctor is already booked in the window
            TransactionException: If the unit of work could not commit
        """
        self._validate_booking_fields(data.kind, data.starts_at, data.duration_minutes)
        starts_at, ends_at = appointment_window(to_utc(data.starts_at), data.duration_minutes)

        async with self._guarded("create_appointment", timeout):
            async with self._unit_of_work(data.doctor_id) as db:
                await self._ensure_patient(db, data.patient_id)
                await self._ensure_doctor(db, data.doctor_id)
                await ConflictChecker.ensure_available(db, data.doctor_id, starts_at, ends_at)

                now = datetime.now(UTC)
                row = await AppointmentRepository.insert_appointment(
                    db,
                    {
                        "patient_id": data.patient_id,
                        "doctor_id": data.doctor_id,
                        "kind": AppointmentKind(data.kind).value,
                        "starts_at": starts_at,
                        "duration_minutes": data.duration_minutes,
                        "ends_at": ends_at,
                        "location": data.location,
                        "notes": data.notes,
                        "patient_history": data.patient_history,
                        "status": INITIAL_STATUS.value,
                        "created_by": actor_id,
                        "updated_by": actor_id,
                        "created_at": now,
                        "updated_at": now,
                    },
                )

                await ActivityService.record(
                    db,
                    ActivityType.APPOINTMENT,
                    "New Appointment Scheduled",
                    f"Appointment for patient {data.patient_id} with doctor {data.doctor_id} "
                    f"on {starts_at.isoformat()} has been scheduled.",
                )

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            doctor_id=str(data.doctor_id),
            starts_at=starts_at.isoformat(),
            actor_id=str(actor_id),
        )
        return row["id"]

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
        actor_id: UUID,
        timeout: float | None = None,
    ) -> AppointmentResponse:
        """
        Apply a partial update to an appointment.

        Only fields explicitly set on ``data`` are changed. When the doctor,
        start or duration changes, or the appointment is re-activated, the
        new window is checked for conflicts, excluding the appointment itself.

        Args:
            appointment_id: Appointment ID
            data: Fields to change
            actor_id: User performing the change
            timeout: Deadline override in seconds

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If appointment not found
            ImmutableStateException: If the appointment is completed
            ValidationException: If a field value or status change is invalid
            ConflictException: If the new window overlaps another booking
            TransactionException: If the unit of work could not commit
        """
        changes = data.model_dump(exclude_unset=True)

        async with self._guarded("update_appointment", timeout):
            async with self._locked_appointment(appointment_id, changes.get("doctor_id")) as (
                db,
                current,
            ):
                ensure_mutable(current["status"])
                cleared = [
                    field
                    for field in REQUIRED_FIELDS
                    if field in changes and changes[field] is None
                ]
                if cleared:
                    raise ValidationException(f"Fields cannot be cleared: {', '.join(cleared)}")

                current_status = AppointmentStatus(current["status"])
                new_status = current_status
                if "status" in changes:
                    new_status = validate_transition(current_status, changes["status"])

                values: dict[str, Any] = {}
                for field in ("kind", "location", "notes", "patient_history"):
                    if field in changes:
                        value = changes[field]
                        values[field] = value.value if isinstance(value, AppointmentKind) else value

                doctor_id = changes.get("doctor_id", current["doctor_id"])
                duration_minutes = changes.get("duration_minutes", current["duration_minutes"])
                starts_at = to_utc(changes.get("starts_at", current["starts_at"]))
                self._validate_booking_fields(
                    values.get("kind", current["kind"]), starts_at, duration_minutes
                )
                starts_at, ends_at = appointment_window(starts_at, duration_minutes)

                doctor_changed = doctor_id != current["doctor_id"]
                window_changed = (
                    starts_at != current["starts_at"]
                    or duration_minutes != current["duration_minutes"]
                )

                if doctor_changed:
                    await self._ensure_doctor(db, doctor_id)
                    values["doctor_id"] = doctor_id
                if window_changed:
                    values.update(
                        starts_at=starts_at, duration_minutes=duration_minutes, ends_at=ends_at
                    )

                needs_check = new_status != AppointmentStatus.CANCELLED and (
                    doctor_changed
                    or window_changed
                    or reenters_active_set(current_status, new_status)
                )
                if needs_check:
                    await ConflictChecker.ensure_available(
                        db, doctor_id, starts_at, ends_at, exclude_id=appointment_id
                    )

                now = datetime.now(UTC)
                if new_status != current_status:
                    values["status"] = new_status.value
                    if new_status == AppointmentStatus.CANCELLED:
                        values["cancelled_at"] = now
                    elif current_status == AppointmentStatus.CANCELLED:
                        values["cancelled_at"] = None

                values["updated_by"] = actor_id
                values["updated_at"] = now
                row = await AppointmentRepository.update_appointment(db, appointment_id, values)

                await ActivityService.record(
                    db,
                    ActivityType.APPOINTMENT,
                    "Appointment Updated",
                    f"Appointment {appointment_id} has been updated. "
                    f"New status: {new_status.value}.",
                )

        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            fields=sorted(changes),
            rechecked=needs_check,
            actor_id=str(actor_id),
        )
        return AppointmentResponse.model_validate(row)

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        actor_id: UUID,
        timeout: float | None = None,
    ) -> AppointmentResponse:
        """
        Cancel an appointment.

        Cancellation is a status change; the record is kept and its window
        becomes free for other bookings.

        Raises:
            NotFoundException: If appointment not found
            ImmutableStateException: If the appointment is completed
            TransactionException: If the unit of work could not commit
        """
        async with self._guarded("cancel_appointment", timeout):
            async with self._locked_appointment(appointment_id) as (db, current):
                if current["status"] == AppointmentStatus.COMPLETED.value:
                    raise ImmutableStateException("Completed appointments cannot be cancelled")
                validate_transition(current["status"], AppointmentStatus.CANCELLED)

                now = datetime.now(UTC)
                row = await AppointmentRepository.update_appointment(
                    db,
                    appointment_id,
                    {
                        "status": AppointmentStatus.CANCELLED.value,
                        "cancelled_at": current["cancelled_at"] or now,
                        "updated_by": actor_id,
                        "updated_at": now,
                    },
                )

                await ActivityService.record(
                    db,
                    ActivityType.APPOINTMENT,
                    "Appointment Cancelled",
                    f"Appointment {appointment_id} has been cancelled.",
                )

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            actor_id=str(actor_id),
        )
        return AppointmentResponse.model_validate(row)

    async def set_appointment_status(
        self,
        appointment_id: UUID,
        status: AppointmentStatus | str,
        actor_id: UUID,
        timeout: float | None = None,
    ) -> AppointmentResponse:
        """
        Move an appointment to another status.

        Moves inside the active set keep the window, so they skip the
        conflict check. Re-activating a cancelled appointment re-checks it.

        Raises:
            ValidationException: If the status is unknown or not reachable
            NotFoundException: If appointment not found
            ImmutableStateException: If the appointment is completed
            ConflictException: If a re-activated window is taken
            TransactionException: If the unit of work could not commit
        """
        new_status = parse_status(status)

        async with self._guarded("set_appointment_status", timeout):
            async with self._locked_appointment(appointment_id) as (db, current):
                current_status = AppointmentStatus(current["status"])
                validate_transition(current_status, new_status)

                if reenters_active_set(current_status, new_status):
                    await ConflictChecker.ensure_available(
                        db,
                        current["doctor_id"],
                        current["starts_at"],
                        current["ends_at"],
                        exclude_id=appointment_id,
                    )

                now = datetime.now(UTC)
                values: dict[str, Any] = {
                    "status": new_status.value,
                    "updated_by": actor_id,
                    "updated_at": now,
                }
                if new_status == AppointmentStatus.CANCELLED:
                    values["cancelled_at"] = current["cancelled_at"] or now
                elif current_status == AppointmentStatus.CANCELLED:
                    values["cancelled_at"] = None

                row = await AppointmentRepository.update_appointment(db, appointment_id, values)

                await ActivityService.record(
                    db,
                    ActivityType.APPOINTMENT,
                    "Appointment Status Updated",
                    f"Appointment {appointment_id} status changed to {new_status.value}.",
                )

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current_status.value,
            new_status=new_status.value,
            actor_id=str(actor_id),
        )
        return AppointmentResponse.model_validate(row)

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments
        """
        async with self.session_factory() as db:
            total, rows = await AppointmentRepository.list_appointments(db, filters)

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(row) for row in rows],
        )

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        async with self.session_factory() as db:
            row = await AppointmentRepository.get_appointment_by_id(db, appointment_id)

        if row is None:
            raise NotFoundException("Appointment not found")
        return AppointmentResponse.model_validate(row)

    async def get_appointment_detail(self, appointment_id: UUID) -> AppointmentDetailResponse:
        """
        Get an appointment with its patient and the patient's latest record.

        Raises:
            NotFoundException: If appointment not found
        """
        async with self.session_factory() as db:
            row = await AppointmentRepository.get_appointment_by_id(db, appointment_id)
            if row is None:
                raise NotFoundException("Appointment not found")

            patient = await PatientRepository.get_patient(db, row["patient_id"])
            last_record = None
            if patient is not None:
                last_record = await MedicalRecordRepository.get_latest_for_patient(
                    db, patient["id"]
                )

        return AppointmentDetailResponse(
            appointment=AppointmentResponse.model_validate(row),
            patient=PatientSummary.model_validate(patient) if patient else None,
            last_record=MedicalRecordSummary.model_validate(last_record) if last_record else None,
        )
