"""Tests for the appointment status lifecycle."""

import pytest

from hms.core.exceptions import (
    ImmutableStateException,
    InvalidStatusTransitionException,
    ValidationException,
)
from hms.schemas.appointments import AppointmentStatus
from hms.services.status_machine import (
    can_transition,
    is_active,
    parse_status,
    reenters_active_set,
    validate_transition,
)


@pytest.mark.parametrize(
    ("current", "new"),
    [
        ("scheduled", "confirmed"),
        ("scheduled", "completed"),
        ("scheduled", "cancelled"),
        ("confirmed", "completed"),
        ("confirmed", "cancelled"),
        ("cancelled", "scheduled"),
    ],
)
def test_allowed_transitions(current: str, new: str) -> None:
    assert validate_transition(current, new) == AppointmentStatus(new)


@pytest.mark.parametrize(
    ("current", "new"),
    [
        ("confirmed", "scheduled"),
        ("cancelled", "confirmed"),
        ("cancelled", "completed"),
    ],
)
def test_disallowed_transitions(current: str, new: str) -> None:
    with pytest.raises(InvalidStatusTransitionException) as exc_info:
        validate_transition(current, new)

    assert exc_info.value.status_code == 422
    assert exc_info.value.current == current
    assert exc_info.value.requested == new


@pytest.mark.parametrize("new", ["scheduled", "confirmed", "cancelled", "completed"])
def test_completed_is_terminal(new: str) -> None:
    """No change is accepted once an appointment is completed."""
    with pytest.raises(ImmutableStateException):
        validate_transition("completed", new)
    assert can_transition("completed", new) is False


@pytest.mark.parametrize("status", ["scheduled", "confirmed", "cancelled"])
def test_same_status_is_noop(status: str) -> None:
    assert validate_transition(status, status) == AppointmentStatus(status)


def test_unknown_status_rejected() -> None:
    with pytest.raises(ValidationException) as exc_info:
        parse_status("postponed")

    assert "postponed" in exc_info.value.message
    assert not isinstance(exc_info.value, InvalidStatusTransitionException)


def test_active_set() -> None:
    assert is_active("scheduled")
    assert is_active(AppointmentStatus.CONFIRMED)
    assert not is_active("completed")
    assert not is_active("cancelled")


def test_reactivation_detected() -> None:
    assert reenters_active_set("cancelled", "scheduled")
    assert not reenters_active_set("scheduled", "confirmed")
    assert not reenters_active_set("scheduled", "cancelled")
