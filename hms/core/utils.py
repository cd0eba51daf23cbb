"""Small shared helpers."""

from datetime import UTC, datetime


def to_utc(value: datetime) -> datetime:
    """Normalize an instant to UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
