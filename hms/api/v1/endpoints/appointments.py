"""Appointment endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from hms.dependencies import ActorId, Bookings
from hms.schemas.appointments import (
    AppointmentCreate,
    AppointmentDetailResponse,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    actor_id: ActorId,
    bookings: Bookings,
) -> AppointmentResponse:
    """
    Book a new appointment if the doctor is free for the whole window.

    Args:
        data: Appointment creation data
        actor_id: User performing the booking
        bookings: Booking service

    Returns:
        Created appointment
    """
    appointment_id = await bookings.create_appointment(data, actor_id)
    return await bookings.get_appointment(appointment_id)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    bookings: Bookings,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    doctor_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with filtering, latest start first.

    Args:
        bookings: Booking service
        status_filter: Filter by status
        doctor_id: Filter by doctor ID
        patient_id: Filter by patient ID
        from_date: Earliest start time
        to_date: Latest start time
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        doctor_id=doctor_id,
        patient_id=patient_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return await bookings.list_appointments(filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    bookings: Bookings,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Args:
        appointment_id: Appointment ID
        bookings: Booking service

    Returns:
        Appointment details
    """
    return await bookings.get_appointment(appointment_id)


@router.get(
    "/{appointment_id}/detail",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment with patient details",
)
async def get_appointment_detail(
    appointment_id: UUID,
    bookings: Bookings,
) -> AppointmentDetailResponse:
    """Get an appointment together with its patient and latest medical record."""
    return await bookings.get_appointment_detail(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    actor_id: ActorId,
    bookings: Bookings,
) -> AppointmentResponse:
    """
    Update an appointment.

    Only the fields present in the payload are changed.

    Args:
        appointment_id: Appointment ID
        data: Update data
        actor_id: User performing the change
        bookings: Booking service

    Returns:
        Updated appointment
    """
    return await bookings.update_appointment(appointment_id, data, actor_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    actor_id: ActorId,
    bookings: Bookings,
) -> AppointmentResponse:
    """
    Move an appointment to another status.

    Args:
        appointment_id: Appointment ID
        data: Status update data
        actor_id: User performing the change
        bookings: Booking service

    Returns:
        Updated appointment
    """
    return await bookings.set_appointment_status(appointment_id, data.status, actor_id)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    actor_id: ActorId,
    bookings: Bookings,
) -> AppointmentResponse:
    """Cancel an appointment, freeing its window for other bookings."""
    return await bookings.cancel_appointment(appointment_id, actor_id)
