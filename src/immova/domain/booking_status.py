"""Booking status machine.

    pending   -> accepted | refused | cancelled
    accepted  -> confirmed | cancelled
    confirmed -> cancelled
"""

from __future__ import annotations

import logging

from psycopg2.extensions import cursor as PgCursor

from immova.domain.errors import ConflictError, NotFoundError
from immova.domain.models import Booking
from immova.infra.repositories import bookings_repository as repo
from immova.infra.time import utc_now

logger = logging.getLogger(__name__)

# Target status -> statuses it may be reached from
TRANSITIONS: dict[str, tuple[str, ...]] = {
    "accepted": ("pending",),
    "refused": ("pending",),
    "confirmed": ("accepted",),
    "cancelled": ("pending", "accepted", "confirmed"),
}


def transition_booking(cur: PgCursor, booking_id: str, to_status: str) -> Booking:
    """Move a booking to to_status inside the caller's transaction.

    The booking row is locked until the transaction ends.

    Raises:
        NotFoundError: If the booking does not exist.
        ConflictError: If the current status does not allow the move.
    """
    allowed_from = TRANSITIONS[to_status]
    booking = repo.get_booking(cur, booking_id, lock=True)
    if booking is None:
        raise NotFoundError(f"booking not found: {booking_id}")
    if booking.status not in allowed_from:
        raise ConflictError(
            f"cannot move booking from {booking.status} to {to_status}",
            details={"booking_id": booking_id, "status": booking.status},
        )

    updated = repo.update_booking_status(
        cur, booking_id=booking_id, status=to_status, processed_at=utc_now()
    )
    logger.info(
        "booking status changed",
        extra={
            "extra_fields": {
                "booking_id": booking_id,
                "from_status": booking.status,
                "to_status": to_status,
            }
        },
    )
    return updated
