"""Host notification of new booking requests.

For every new booking: action tokens are issued and a BOOKING_CREATED outbox
event is written (one transaction), then a worker task is enqueued with the
event id only. Any failure here is logged and swallowed; the booking
request itself has already been committed.
"""

from __future__ import annotations

import logging

from immova.domain.email_actions import issue_action_tokens
from immova.domain.models import Booking
from immova.domain.periods import nights
from immova.infra.db import txn
from immova.infra.repositories.outbox_repository import emit_booking_created
from immova.observability.correlation import generate_correlation_id, get_correlation_id
from immova.tasks.client import get_tasks_client

logger = logging.getLogger(__name__)

BOOKING_CREATED_TASK_PATH = "/tasks/notifications/booking-created"


def notify_bookings_created(bookings: list[Booking]) -> list[int]:
    """Record and dispatch a notification per booking.

    Returns:
        Outbox event ids written (empty if the notification step failed).
    """
    if not bookings:
        return []

    # Outside a request (scripts, inline tasks) the events still get a trace id.
    correlation_id = get_correlation_id() or generate_correlation_id()
    try:
        event_ids = []
        with txn() as cur:
            for booking in bookings:
                tokens = issue_action_tokens(cur, booking.id)
                event_ids.append(
                    emit_booking_created(
                        cur,
                        booking_id=booking.id,
                        apartment_id=booking.apartment_id,
                        start_date=booking.start_date.isoformat(),
                        end_date=booking.end_date.isoformat(),
                        nights=nights(booking.start_date, booking.end_date),
                        price=str(booking.price),
                        total_price=str(booking.total_price),
                        accept_token=tokens.accept_token,
                        refuse_token=tokens.refuse_token,
                        correlation_id=correlation_id,
                    )
                )

        client = get_tasks_client()
        for event_id in event_ids:
            client.enqueue_http(
                task_id=f"booking-created:{event_id}",
                url_path=BOOKING_CREATED_TASK_PATH,
                payload={"event_id": event_id},
                correlation_id=correlation_id,
            )
    except Exception:
        logger.exception(
            "booking notification failed",
            extra={"extra_fields": {"booking_ids": [b.id for b in bookings]}},
        )
        return []

    logger.info(
        "booking notification queued",
        extra={"extra_fields": {"booking_ids": [b.id for b in bookings], "events": len(event_ids)}},
    )
    return event_ids
