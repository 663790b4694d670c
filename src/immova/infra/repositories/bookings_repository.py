"""Bookings repository - persistence for stays and their status.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import date, datetime
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor
from psycopg2.extras import Json

from immova.domain.models import ACTIVE_BOOKING_STATUSES, Booking

_COLUMNS = (
    "id, apartment_id, start_date, end_date, status, price, total_price, "
    "user_id, booked_at, processed_at, guest_details, additional_services"
)


def _row_to_booking(row: tuple) -> Booking:
    return Booking(
        id=str(row[0]),
        apartment_id=row[1],
        start_date=row[2],
        end_date=row[3],
        status=row[4],
        price=row[5],
        total_price=row[6],
        user_id=row[7],
        booked_at=row[8],
        processed_at=row[9],
        guest_details=row[10] or {},
        additional_services=row[11] or {},
    )


def find_overlapping_active(
    cur: PgCursor,
    *,
    apartment_id: str,
    start: date,
    end: date,
) -> list[Booking]:
    """Active bookings sharing at least one night with [start, end).

    Strict overlap: existing.start < end AND existing.end > start, so an
    arrival on another stay's departure day is not a conflict.
    """
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM bookings
        WHERE apartment_id = %s
          AND status = ANY(%s)
          AND start_date < %s
          AND end_date > %s
        ORDER BY start_date
        """,
        (apartment_id, list(ACTIVE_BOOKING_STATUSES), end, start),
    )
    return [_row_to_booking(r) for r in cur.fetchall()]


def list_active_bookings(
    cur: PgCursor,
    *,
    apartment_id: str,
    ending_on_or_after: date,
) -> list[Booking]:
    """Active bookings whose departure is on or after the given date."""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM bookings
        WHERE apartment_id = %s
          AND status = ANY(%s)
          AND end_date >= %s
        ORDER BY start_date
        """,
        (apartment_id, list(ACTIVE_BOOKING_STATUSES), ending_on_or_after),
    )
    return [_row_to_booking(r) for r in cur.fetchall()]


def insert_booking(
    cur: PgCursor,
    *,
    apartment_id: str,
    start: date,
    end: date,
    price: Decimal,
    total_price: Decimal,
    user_id: str | None,
    guest_details: dict,
    additional_services: dict,
) -> Booking:
    """Insert a booking request with status 'pending'."""
    cur.execute(
        f"""
        INSERT INTO bookings (
            apartment_id, start_date, end_date, status,
            price, total_price, user_id,
            guest_details, additional_services
        )
        VALUES (%s, %s, %s, 'pending', %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """,
        (
            apartment_id,
            start,
            end,
            price,
            total_price,
            user_id,
            Json(guest_details),
            Json(additional_services),
        ),
    )
    return _row_to_booking(cur.fetchone())


def get_booking(cur: PgCursor, booking_id: str, *, lock: bool = False) -> Booking | None:
    """Fetch a booking by id, optionally locking it FOR UPDATE."""
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"SELECT {_COLUMNS} FROM bookings WHERE id = %s{suffix}",
        (booking_id,),
    )
    row = cur.fetchone()
    return _row_to_booking(row) if row else None


def update_booking_status(
    cur: PgCursor,
    *,
    booking_id: str,
    status: str,
    processed_at: datetime,
) -> Booking:
    cur.execute(
        f"""
        UPDATE bookings
        SET status = %s, processed_at = %s
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (status, processed_at, booking_id),
    )
    return _row_to_booking(cur.fetchone())


def list_bookings(
    cur: PgCursor,
    *,
    status: str | None,
    limit: int,
    offset: int,
) -> tuple[list[Booking], int]:
    """Page through bookings, newest first.

    Returns:
        Tuple of (bookings on this page, total matching count).
    """
    where = "WHERE status = %s" if status else ""
    params: list = [status] if status else []

    cur.execute(f"SELECT COUNT(*) FROM bookings {where}", params)
    total = cur.fetchone()[0]

    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM bookings
        {where}
        ORDER BY booked_at DESC
        LIMIT %s OFFSET %s
        """,
        params + [limit, offset],
    )
    return [_row_to_booking(r) for r in cur.fetchall()], total
