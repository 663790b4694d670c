"""Availability resolver.

Answers "can a new stay [start, end) be booked" against both sources of
unavailability:

- blocked periods, matched with closed-interval overlap on [start, end]; a
  block closes its end day too, as on the disabled-date calendar
- active bookings (pending, accepted, confirmed), matched with strict overlap,
  so arriving on another guest's departure day is not a conflict
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from immova.domain.models import BlockedPeriod, Booking
from immova.domain.periods import require_range, to_utc_date
from immova.domain.properties import parse_property
from immova.infra.db import txn
from immova.infra.repositories.blocked_periods_repository import find_overlapping
from immova.infra.repositories.bookings_repository import find_overlapping_active

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    blocked_conflicts: list[BlockedPeriod] = field(default_factory=list)
    booking_conflicts: list[Booking] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "blocked_conflicts": [p.to_dict() for p in self.blocked_conflicts],
            "booking_conflicts": [
                {
                    "id": b.id,
                    "start_date": b.start_date.isoformat(),
                    "end_date": b.end_date.isoformat(),
                    "status": b.status,
                }
                for b in self.booking_conflicts
            ],
        }


def check_availability(
    apartment_id: str,
    start: date | str,
    end: date | str,
    *,
    cur: PgCursor | None = None,
) -> AvailabilityResult:
    """Check whether a stay from start (arrival) to end (departure) is free.

    Args:
        apartment_id: Apartment key.
        start: Arrival date.
        end: Departure date.
        cur: Optional cursor to run inside an existing transaction.

    Raises:
        ValidationError: Unknown apartment or unparseable dates.
        InvalidRangeError: If start >= end. Raised before any query.
    """
    prop = parse_property(apartment_id)
    start_d = to_utc_date(start)
    end_d = to_utc_date(end)
    require_range(start_d, end_d, allow_single_day=False)

    def _do(c: PgCursor) -> AvailabilityResult:
        blocked = find_overlapping(c, apartment_id=prop.value, start=start_d, end=end_d)
        bookings = find_overlapping_active(c, apartment_id=prop.value, start=start_d, end=end_d)
        return AvailabilityResult(
            available=not blocked and not bookings,
            blocked_conflicts=blocked,
            booking_conflicts=bookings,
        )

    if cur is not None:
        result = _do(cur)
    else:
        with txn() as c:
            result = _do(c)

    if not result.available:
        logger.info(
            "availability conflict",
            extra={
                "extra_fields": {
                    "apartment_id": prop.value,
                    "requested_start": start_d.isoformat(),
                    "requested_end": end_d.isoformat(),
                    "blocked_conflicts": len(result.blocked_conflicts),
                    "booking_conflicts": len(result.booking_conflicts),
                }
            },
        )

    return result
