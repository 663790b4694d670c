"""Date-range primitives shared by availability, blocking and pricing.

All calendar logic works on ``datetime.date`` values anchored to UTC. Inputs
arriving as ISO strings or timestamps are reduced to their UTC calendar date
first, so a stay stored as ``2025-09-22T00:00:00Z`` never shifts to the 21st
because of a local timezone.

Two overlap conventions coexist:

- closed:  [a_start, a_end] and [b_start, b_end] share at least one date.
           Used for blocked periods, whose end date is part of the range.
- strict:  a_start < b_end and a_end > b_start.
           Used for stays, whose end date is the departure day (free for a
           new arrival).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator

from immova.domain.errors import InvalidRangeError, ValidationError

ONE_DAY = timedelta(days=1)


def to_utc_date(value: date | datetime | str) -> date:
    """Reduce a date, datetime or ISO string to its UTC calendar date.

    Naive datetimes are taken as UTC.

    Raises:
        ValidationError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_iso_date(value)
    raise ValidationError(f"expected a date, got {type(value).__name__}")


def parse_iso_date(value: str, field: str = "date") -> date:
    """Parse ``YYYY-MM-DD`` or a full ISO-8601 instant into a UTC date."""
    text = value.strip()
    if not text:
        raise ValidationError(f"{field} is required")
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return to_utc_date(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}") from None


def overlaps_closed(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """True if the closed ranges [a_start, a_end] and [b_start, b_end] intersect."""
    return a_start <= b_end and a_end >= b_start


def overlaps_strict(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """True if two arrival/departure stays share at least one night."""
    return a_start < b_end and a_end > b_start


def require_range(start: date, end: date, *, allow_single_day: bool) -> None:
    """Validate a range before it reaches the store.

    Args:
        allow_single_day: True for blocked periods (start == end blocks one
            day). False for stays, which need at least one night.

    Raises:
        InvalidRangeError: If the range is inverted, or empty when a stay
            is required.
    """
    if start > end or (not allow_single_day and start == end):
        raise InvalidRangeError(start, end)


def iter_dates(start: date, end: date, *, inclusive: bool = False) -> Iterator[date]:
    """Yield each calendar date from start up to end (end included if asked)."""
    current = start
    while current < end or (inclusive and current == end):
        yield current
        current += ONE_DAY


def nights(start: date, end: date) -> int:
    """Number of nights between arrival and departure."""
    return max(0, (end - start).days)
