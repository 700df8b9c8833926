"""Shared utilities used across the assignment engine."""

from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Union


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string (or pass a date through unchanged).

    Examples:
        >>> parse_date("2026-03-15")
        datetime.date(2026, 3, 15)
    """
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield each date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def covered_dates(start: date, day_count: int) -> list[date]:
    """Return the consecutive dates a job starting on ``start`` occupies."""
    return [start + timedelta(days=offset) for offset in range(max(day_count, 1))]


def full_name(first: Optional[str], last: Optional[str]) -> str:
    """Join first and last name, tolerating missing parts.

    Examples:
        >>> full_name("Anna", None)
        'Anna'
    """
    return f"{first or ''} {last or ''}".strip()


def utcnow() -> datetime:
    """Timezone-aware current time used for every record timestamp."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC.

    Examples:
        >>> as_utc(datetime(2026, 3, 2, 8, 0)).tzinfo
        datetime.timezone.utc
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
