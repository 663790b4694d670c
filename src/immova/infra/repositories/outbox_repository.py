"""Outbox repository - event emission for asynchronous notification.

Uses raw SQL with psycopg2 (no ORM).
"""

import json

from psycopg2.extensions import cursor as PgCursor

BOOKING_CREATED = "BOOKING_CREATED"


def emit_event(
    cur: PgCursor,
    *,
    apartment_id: str,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str,
    payload: dict | None = None,
    correlation_id: str | None = None,
) -> int:
    """Emit an event to the outbox.

    Args:
        cur: Database cursor (within transaction).
        apartment_id: Apartment the event is about.
        event_type: Event type (e.g., BOOKING_CREATED).
        aggregate_type: Aggregate type (e.g., booking).
        aggregate_id: Aggregate ID (e.g., booking UUID).
        payload: Optional JSON payload (no guest PII).
        correlation_id: Optional correlation ID for tracing.

    Returns:
        The generated event ID.
    """
    payload_json = json.dumps(payload, default=str) if payload else None

    cur.execute(
        """
        INSERT INTO outbox_events (
            apartment_id, event_type, aggregate_type,
            aggregate_id, payload, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            apartment_id,
            event_type,
            aggregate_type,
            aggregate_id,
            payload_json,
            correlation_id,
        ),
    )
    return cur.fetchone()[0]


def emit_booking_created(
    cur: PgCursor,
    *,
    booking_id: str,
    apartment_id: str,
    start_date: str,
    end_date: str,
    nights: int,
    price: str,
    total_price: str,
    accept_token: str,
    refuse_token: str,
    correlation_id: str | None = None,
) -> int:
    """Emit BOOKING_CREATED with everything the host notification needs.

    Dates are ISO strings, amounts are decimal strings.
    """
    payload = {
        "booking_id": booking_id,
        "apartment_id": apartment_id,
        "start_date": start_date,
        "end_date": end_date,
        "nights": nights,
        "price": price,
        "total_price": total_price,
        "accept_token": accept_token,
        "refuse_token": refuse_token,
    }

    return emit_event(
        cur,
        apartment_id=apartment_id,
        event_type=BOOKING_CREATED,
        aggregate_type="booking",
        aggregate_id=booking_id,
        payload=payload,
        correlation_id=correlation_id,
    )


def get_event(cur: PgCursor, event_id: int) -> dict | None:
    """Fetch an outbox event by id (payload decoded)."""
    cur.execute(
        """
        SELECT id, apartment_id, event_type, aggregate_type, aggregate_id,
               payload, correlation_id, created_at
        FROM outbox_events
        WHERE id = %s
        """,
        (event_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None

    payload = row[5]
    if isinstance(payload, str):
        payload = json.loads(payload)

    return {
        "id": row[0],
        "apartment_id": row[1],
        "event_type": row[2],
        "aggregate_type": row[3],
        "aggregate_id": row[4],
        "payload": payload or {},
        "correlation_id": row[6],
        "created_at": row[7],
    }
