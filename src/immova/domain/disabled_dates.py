"""Disabled-date expander for the booking calendar.

Turns blocked periods and active bookings into the literal list of dates a
new stay may not occupy, plus the dates that are free for an arrival because
someone departs that day.

End-date rule:
- booking [arrival, departure]: arrival .. departure-1 disabled, departure
  free for arrival.
- blocked period [start, end]: every day from start through end disabled,
  whatever its length. The admin closed the whole range; availability checks
  and block splitting use the same closed range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from psycopg2.extensions import cursor as PgCursor

from immova.domain.errors import DataIntegrityWarning
from immova.domain.models import BlockedPeriod, Booking
from immova.domain.periods import iter_dates, to_utc_date
from immova.domain.properties import parse_property
from immova.infra.db import txn
from immova.infra.repositories.blocked_periods_repository import list_blocked_periods
from immova.infra.repositories.bookings_repository import list_active_bookings
from immova.infra.time import utc_today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisabledDates:
    disabled_dates: list[str]
    available_departure_dates: list[str]
    blocked_periods: list[BlockedPeriod] = field(default_factory=list)
    bookings: list[Booking] = field(default_factory=list)
    skipped_records: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "disabled_dates": self.disabled_dates,
            "available_departure_dates": self.available_departure_dates,
            "periods": {
                "blocked_periods": [p.to_dict() for p in self.blocked_periods],
                "bookings": [
                    {
                        "id": b.id,
                        "start_date": b.start_date.isoformat(),
                        "end_date": b.end_date.isoformat(),
                        "status": b.status,
                    }
                    for b in self.bookings
                ],
            },
            "skipped_records": self.skipped_records,
        }


def _checked_range(kind: str, record_id: str, start: Any, end: Any) -> tuple[date, date]:
    """Return (start, end) as UTC dates or raise DataIntegrityWarning."""
    if start is None or end is None:
        raise DataIntegrityWarning(kind, record_id, "missing start or end date")
    try:
        start_d = to_utc_date(start)
        end_d = to_utc_date(end)
    except Exception as exc:
        raise DataIntegrityWarning(kind, record_id, f"unreadable date ({exc})") from exc
    if end_d < start_d:
        raise DataIntegrityWarning(
            kind, record_id, f"end {end_d.isoformat()} before start {start_d.isoformat()}"
        )
    return start_d, end_d


def blocked_period_dates(period: BlockedPeriod) -> list[date]:
    """Dates a blocked period disables, both ends included.

    Raises:
        DataIntegrityWarning: If the stored dates are inconsistent.
    """
    start, end = _checked_range("blocked_period", period.id, period.start_date, period.end_date)
    return list(iter_dates(start, end, inclusive=True))


def booking_dates(booking: Booking) -> tuple[list[date], date]:
    """Occupied nights of a booking, and its departure day.

    Raises:
        DataIntegrityWarning: If the stored dates are inconsistent.
    """
    start, end = _checked_range("booking", booking.id, booking.start_date, booking.end_date)
    return list(iter_dates(start, end)), end


def expand(
    blocked_periods: Iterable[BlockedPeriod],
    bookings: Iterable[Booking],
) -> DisabledDates:
    """Expand periods into sorted, de-duplicated ISO date lists.

    Inconsistent records are logged and skipped; the rest still expands.
    """
    disabled: set[date] = set()
    departures: set[date] = set()
    kept_periods: list[BlockedPeriod] = []
    kept_bookings: list[Booking] = []
    skipped = 0

    for period in blocked_periods:
        try:
            days = blocked_period_dates(period)
        except DataIntegrityWarning as warning:
            skipped += 1
            _log_skipped(warning)
            continue
        disabled.update(days)
        kept_periods.append(period)

    for booking in bookings:
        try:
            days, departure = booking_dates(booking)
        except DataIntegrityWarning as warning:
            skipped += 1
            _log_skipped(warning)
            continue
        disabled.update(days)
        departures.add(departure)
        kept_bookings.append(booking)

    return DisabledDates(
        disabled_dates=[d.isoformat() for d in sorted(disabled)],
        available_departure_dates=[d.isoformat() for d in sorted(departures)],
        blocked_periods=kept_periods,
        bookings=kept_bookings,
        skipped_records=skipped,
    )


def expand_disabled_dates(
    apartment_id: str,
    *,
    today: date | None = None,
    cur: PgCursor | None = None,
) -> DisabledDates:
    """Disabled and arrival-eligible dates for an apartment's calendar.

    Only periods and active bookings ending on or after today (UTC) are read.

    Raises:
        ValidationError: Unknown apartment.
    """
    prop = parse_property(apartment_id)
    since = today or utc_today()

    def _load(c: PgCursor) -> tuple[list[BlockedPeriod], list[Booking]]:
        periods = list_blocked_periods(c, apartment_id=prop.value, ending_on_or_after=since)
        bookings = list_active_bookings(c, apartment_id=prop.value, ending_on_or_after=since)
        return periods, bookings

    if cur is not None:
        periods, bookings = _load(cur)
    else:
        with txn() as c:
            periods, bookings = _load(c)

    return expand(periods, bookings)


def _log_skipped(warning: DataIntegrityWarning) -> None:
    logger.warning(
        "inconsistent record skipped in calendar expansion",
        extra={
            "extra_fields": {
                "record_kind": warning.record_kind,
                "record_id": warning.record_id,
                "reason": warning.reason,
            }
        },
    )
