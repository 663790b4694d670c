"""Blocked periods repository - persistence for admin-blocked date ranges.

Uses raw SQL with psycopg2 (no ORM). Range filters are the SQL form of the
predicates in immova.domain.periods.
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from immova.domain.errors import ValidationError
from immova.domain.models import BlockedPeriod

_COLUMNS = "id, apartment_id, start_date, end_date, reason"


def _row_to_period(row: tuple) -> BlockedPeriod:
    return BlockedPeriod(
        id=str(row[0]),
        apartment_id=row[1],
        start_date=row[2],
        end_date=row[3],
        reason=row[4],
    )


def find_overlapping(
    cur: PgCursor,
    *,
    apartment_id: str,
    start: date,
    end: date,
) -> list[BlockedPeriod]:
    """Return periods whose closed range [start_date, end_date] meets [start, end].

    Same as overlaps_closed(existing.start, existing.end, start, end).
    """
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM blocked_periods
        WHERE apartment_id = %s
          AND start_date <= %s
          AND end_date >= %s
        ORDER BY start_date
        """,
        (apartment_id, end, start),
    )
    return [_row_to_period(r) for r in cur.fetchall()]


def list_blocked_periods(
    cur: PgCursor,
    *,
    apartment_id: str,
    ending_on_or_after: date | None = None,
) -> list[BlockedPeriod]:
    """List an apartment's periods sorted by start date.

    Args:
        ending_on_or_after: If set, skip periods that ended before this date.
    """
    if ending_on_or_after is None:
        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM blocked_periods
            WHERE apartment_id = %s
            ORDER BY start_date
            """,
            (apartment_id,),
        )
    else:
        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM blocked_periods
            WHERE apartment_id = %s
              AND end_date >= %s
            ORDER BY start_date
            """,
            (apartment_id, ending_on_or_after),
        )
    return [_row_to_period(r) for r in cur.fetchall()]


def insert_blocked_period(
    cur: PgCursor,
    *,
    apartment_id: str,
    start: date,
    end: date,
    reason: str,
) -> BlockedPeriod:
    """Insert a blocked period.

    Raises:
        ValidationError: If start > end.
    """
    if start > end:
        raise ValidationError(f"blocked period start {start} is after end {end}")

    cur.execute(
        f"""
        INSERT INTO blocked_periods (apartment_id, start_date, end_date, reason)
        VALUES (%s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """,
        (apartment_id, start, end, reason),
    )
    return _row_to_period(cur.fetchone())


def delete_blocked_period(cur: PgCursor, period_id: str) -> bool:
    """Delete one period by id. Returns False if it did not exist."""
    cur.execute(
        "DELETE FROM blocked_periods WHERE id = %s RETURNING id",
        (period_id,),
    )
    return cur.fetchone() is not None


def delete_blocked_periods(
    cur: PgCursor,
    *,
    apartment_id: str,
    period_ids: list[str] | None = None,
) -> int:
    """Delete an apartment's periods (all of them, or only period_ids).

    Returns:
        Number of rows deleted.
    """
    if period_ids is None:
        cur.execute(
            "DELETE FROM blocked_periods WHERE apartment_id = %s",
            (apartment_id,),
        )
    else:
        cur.execute(
            "DELETE FROM blocked_periods WHERE apartment_id = %s AND id = ANY(%s::uuid[])",
            (apartment_id, period_ids),
        )
    return cur.rowcount
