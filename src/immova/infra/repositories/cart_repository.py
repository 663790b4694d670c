"""Cart repository - one cart per user, with its held stays.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import date, datetime
from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from immova.domain.models import Cart, CartItem

_ITEM_COLUMNS = "id, apartment_id, start_date, end_date, price"


def _row_to_item(row: tuple) -> CartItem:
    return CartItem(
        id=str(row[0]),
        apartment_id=row[1],
        start_date=row[2],
        end_date=row[3],
        price=row[4],
    )


def _load_items(cur: PgCursor, cart_id: str) -> tuple[CartItem, ...]:
    cur.execute(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM cart_items
        WHERE cart_id = %s
        ORDER BY created_at, id
        """,
        (cart_id,),
    )
    return tuple(_row_to_item(r) for r in cur.fetchall())


def get_cart(cur: PgCursor, *, user_id: str, for_update: bool = False) -> Cart | None:
    """Return the user's cart with its items, expired or not."""
    lock = " FOR UPDATE" if for_update else ""
    cur.execute(
        f"SELECT id, user_id, expires_at FROM carts WHERE user_id = %s{lock}",
        (user_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None

    cart_id = str(row[0])
    return Cart(id=cart_id, user_id=row[1], expires_at=row[2], items=_load_items(cur, cart_id))


def create_cart(cur: PgCursor, *, user_id: str, expires_at: datetime) -> Cart:
    """Create an empty cart (a concurrent creation only moves the expiry)."""
    cur.execute(
        """
        INSERT INTO carts (user_id, expires_at)
        VALUES (%s, %s)
        ON CONFLICT (user_id) DO UPDATE SET expires_at = EXCLUDED.expires_at
        RETURNING id, user_id, expires_at
        """,
        (user_id, expires_at),
    )
    row = cur.fetchone()
    return Cart(id=str(row[0]), user_id=row[1], expires_at=row[2])


def set_expiry(cur: PgCursor, *, cart_id: str, expires_at: datetime) -> None:
    cur.execute("UPDATE carts SET expires_at = %s WHERE id = %s", (expires_at, cart_id))


def delete_cart(cur: PgCursor, *, cart_id: str) -> None:
    """Delete a cart; its items go with it (ON DELETE CASCADE)."""
    cur.execute("DELETE FROM carts WHERE id = %s", (cart_id,))


def insert_item(
    cur: PgCursor,
    *,
    cart_id: str,
    apartment_id: str,
    start: date,
    end: date,
    price: Decimal,
) -> CartItem:
    cur.execute(
        f"""
        INSERT INTO cart_items (cart_id, apartment_id, start_date, end_date, price)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING {_ITEM_COLUMNS}
        """,
        (cart_id, apartment_id, start, end, price),
    )
    return _row_to_item(cur.fetchone())


def delete_item(cur: PgCursor, *, cart_id: str, item_id: str) -> bool:
    """Remove one item. Returns False if the cart does not hold it."""
    cur.execute(
        "DELETE FROM cart_items WHERE cart_id = %s AND id = %s",
        (cart_id, item_id),
    )
    return cur.rowcount > 0


def clear_items(cur: PgCursor, *, cart_id: str) -> int:
    cur.execute("DELETE FROM cart_items WHERE cart_id = %s", (cart_id,))
    return cur.rowcount


def delete_expired_carts(cur: PgCursor, *, now: datetime) -> int:
    """Delete carts past their expiry.

    Returns:
        Number of carts deleted.
    """
    cur.execute("DELETE FROM carts WHERE expires_at <= %s", (now,))
    return cur.rowcount
