"""Appointment status lifecycle rules."""

from hms.core.exceptions import (
    ImmutableStateException,
    InvalidStatusTransitionException,
    ValidationException,
)
from hms.schemas.appointments import AppointmentStatus

INITIAL_STATUS = AppointmentStatus.SCHEDULED

ACTIVE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})

TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED})

# A cancelled appointment may be re-booked, which puts it back in the active
# set and therefore through the conflict check again.
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset({AppointmentStatus.SCHEDULED}),
}


def parse_status(value: AppointmentStatus | str) -> AppointmentStatus:
    """
    Coerce a raw value into an AppointmentStatus.

    Raises:
        ValidationException: If the value is not a defined status
    """
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in AppointmentStatus)
        raise ValidationException(
            f"Invalid appointment status '{value}'. Allowed values: {allowed}"
        ) from None


def is_active(status: AppointmentStatus | str) -> bool:
    """Whether appointments in this status occupy their window."""
    return parse_status(status) in ACTIVE_STATUSES


def ensure_mutable(status: AppointmentStatus | str) -> None:
    """
    Reject any change to an appointment in a terminal status.

    Raises:
        ImmutableStateException: If the status is terminal
    """
    current = parse_status(status)
    if current in TERMINAL_STATUSES:
        raise ImmutableStateException(
            f"Appointment is {current.value} and can no longer be modified"
        )


def can_transition(current: AppointmentStatus | str, new: AppointmentStatus | str) -> bool:
    """Check a transition without raising."""
    current_status = parse_status(current)
    new_status = parse_status(new)
    if current_status in TERMINAL_STATUSES:
        return False
    return new_status == current_status or new_status in ALLOWED_TRANSITIONS[current_status]


def validate_transition(
    current: AppointmentStatus | str,
    new: AppointmentStatus | str,
) -> AppointmentStatus:
    """
    Validate a status change and return the target status.

    Staying in the same non-terminal status is accepted as a no-op.

    Raises:
        ValidationException: If new is not a defined status
        ImmutableStateException: If current is terminal
        InvalidStatusTransitionException: If the transition is not allowed
    """
    current_status = parse_status(current)
    new_status = parse_status(new)
    ensure_mutable(current_status)

    if not can_transition(current_status, new_status):
        raise InvalidStatusTransitionException(current_status.value, new_status.value)

    return new_status


def reenters_active_set(current: AppointmentStatus | str, new: AppointmentStatus | str) -> bool:
    """Whether a transition moves an appointment back into the active set."""
    return not is_active(current) and is_active(new)
