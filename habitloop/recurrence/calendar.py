"""Calendar utilities: pure date arithmetic on local instants."""

from datetime import date, datetime, timedelta
from typing import Union

Instant = Union[datetime, date]


def add_days(base: Instant, n: int) -> Instant:
    """Return base shifted by n whole days (n may be zero or negative)."""
    return base + timedelta(days=n)


def date_key(instant: Instant) -> str:
    """Format the instant's local calendar date as YYYY-MM-DD.

    Zero-padded, so keys sort lexicographically in date order.
    """
    d = instant.date() if isinstance(instant, datetime) else instant
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def weekday_of(instant: Instant) -> int:
    """Day of week with Sunday=0 ... Saturday=6."""
    # Python weekday: Monday=0 ... Sunday=6
    return (instant.weekday() + 1) % 7


def parse_date_key(key: str) -> date:
    return date.fromisoformat(key)
