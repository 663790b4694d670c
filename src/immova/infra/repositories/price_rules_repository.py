"""Price rules repository - persistence for date-ranged nightly prices.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import date
from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from immova.domain.models import PriceRule

_COLUMNS = (
    "id, property, name, start_date, end_date, price_per_night, "
    "is_active, priority, created_at, updated_at"
)

# Columns a PUT may change
UPDATABLE_FIELDS = (
    "property",
    "name",
    "start_date",
    "end_date",
    "price_per_night",
    "is_active",
    "priority",
)


def _row_to_rule(row: tuple) -> PriceRule:
    return PriceRule(
        id=str(row[0]),
        property=row[1],
        name=row[2],
        start_date=row[3],
        end_date=row[4],
        price_per_night=row[5],
        is_active=row[6],
        priority=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


def list_rules(cur: PgCursor, *, property_key: str) -> list[PriceRule]:
    """All rules for a property, best candidate first.

    Order: priority desc, then newest created_at, so the first active rule
    covering a date is the one that applies.
    """
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM price_rules
        WHERE property = %s
        ORDER BY priority DESC, created_at DESC, start_date
        """,
        (property_key,),
    )
    return [_row_to_rule(r) for r in cur.fetchall()]


def get_rule(cur: PgCursor, rule_id: str, *, lock: bool = False) -> PriceRule | None:
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"SELECT {_COLUMNS} FROM price_rules WHERE id = %s{suffix}",
        (rule_id,),
    )
    row = cur.fetchone()
    return _row_to_rule(row) if row else None


def insert_rule(
    cur: PgCursor,
    *,
    property_key: str,
    name: str,
    start: date,
    end: date,
    price_per_night: Decimal,
    priority: int,
    is_active: bool = True,
) -> PriceRule:
    cur.execute(
        f"""
        INSERT INTO price_rules (
            property, name, start_date, end_date,
            price_per_night, priority, is_active
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """,
        (property_key, name, start, end, price_per_night, priority, is_active),
    )
    return _row_to_rule(cur.fetchone())


def update_rule(cur: PgCursor, rule_id: str, changes: dict[str, Any]) -> PriceRule | None:
    """Apply a partial update. Unknown keys are ignored.

    Returns:
        The updated rule, or None if rule_id does not exist.
    """
    fields = [f for f in UPDATABLE_FIELDS if f in changes]
    if not fields:
        return get_rule(cur, rule_id)

    assignments = ", ".join(f"{f} = %s" for f in fields)
    params = [changes[f] for f in fields] + [rule_id]
    cur.execute(
        f"""
        UPDATE price_rules
        SET {assignments}, updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        params,
    )
    row = cur.fetchone()
    return _row_to_rule(row) if row else None


def set_rule_active(cur: PgCursor, rule_id: str, is_active: bool) -> PriceRule | None:
    cur.execute(
        f"""
        UPDATE price_rules
        SET is_active = %s, updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (is_active, rule_id),
    )
    row = cur.fetchone()
    return _row_to_rule(row) if row else None


def delete_rule(cur: PgCursor, rule_id: str) -> PriceRule | None:
    """Delete a rule. Returns the deleted rule (None if it did not exist)."""
    cur.execute(
        f"DELETE FROM price_rules WHERE id = %s RETURNING {_COLUMNS}",
        (rule_id,),
    )
    row = cur.fetchone()
    return _row_to_rule(row) if row else None
