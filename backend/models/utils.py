"""Shared utilities for ORM models."""

import uuid
from datetime import date, datetime, timezone


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current UTC time as a naive datetime.

    SQLite hands back naive datetimes, so every timestamp the ledger
    stores or compares is naive UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | date) -> datetime:
    """Normalize a date or datetime to naive UTC.

    Aware datetimes are converted to UTC; naive ones are assumed to
    already be UTC; plain dates become midnight.
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
