"""Custom application exceptions."""

from collections.abc import Iterable
from uuid import UUID


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class InvalidStatusTransitionException(ValidationException):
    """Requested status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str):
        """Initialize with both ends of the rejected transition."""
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change appointment status from '{current}' to '{requested}'")


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(
        self,
        message: str = "Conflict",
        conflicting_ids: Iterable[UUID] = (),
    ):
        """Initialize with 409 status code and the clashing appointment ids."""
        self.conflicting_ids = list(conflicting_ids)
        super().__init__(message, status_code=409)


class ImmutableStateException(AppException):
    """Attempt to change a record that can no longer be modified."""

    def __init__(self, message: str = "Resource can no longer be modified"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class TransactionException(AppException):
    """A unit of work failed to commit and was rolled back."""

    def __init__(self, message: str = "Transaction failed and was rolled back"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


class AggregationException(AppException):
    """One of the concurrent reads behind an aggregate failed."""

    def __init__(self, message: str = "Aggregation failed"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
