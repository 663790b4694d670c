"""Guest cart: stays held for up to 30 minutes before checkout.

Each user has at most one cart. Adding a stay checks it against the calendar
and the property's stay rules, quotes its price, and pushes the expiry 30
minutes forward. An expired cart is discarded the next time it is touched.
Checkout turns the items into one booking request (priced again, since
rules may have changed since the quote) and deletes the cart.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from immova.domain.bookings import (
    create_booking_request,
    enforce_stay_rules,
    parse_stay,
    require_available,
)
from immova.domain.errors import CartExpiredError, ConflictError, NotFoundError, ValidationError
from immova.domain.models import Booking, Cart
from immova.domain.periods import overlaps_strict
from immova.domain.pricing import PriceResolver, get_price_resolver
from immova.infra.booking_settings import get_property_settings
from immova.infra.db import txn
from immova.infra.repositories import cart_repository as repo
from immova.infra.time import utc_now

logger = logging.getLogger(__name__)

CART_TTL = timedelta(minutes=30)


def _require_user(user_id: str | None) -> str:
    if not user_id or not user_id.strip():
        raise ValidationError("user_id is required")
    return user_id.strip()


def get_cart(user_id: str) -> Cart:
    """Return the user's live cart, starting a new empty one if needed."""
    user_id = _require_user(user_id)
    now = utc_now()
    with txn() as cur:
        cart = repo.get_cart(cur, user_id=user_id)
        if cart is not None and cart.is_expired(now):
            repo.delete_cart(cur, cart_id=cart.id)
            cart = None
        if cart is None:
            cart = repo.create_cart(cur, user_id=user_id, expires_at=now + CART_TTL)
    return cart


def add_item(
    user_id: str,
    item: dict[str, Any],
    *,
    resolver: PriceResolver | None = None,
) -> Cart:
    """Hold a stay in the user's cart and extend the cart's expiry.

    Raises:
        ValidationError: Missing user, malformed item, or stay rules broken.
        InvalidRangeError: start_date >= end_date.
        ConflictError: The dates are blocked or booked, or overlap a stay
            already in the cart.
    """
    user_id = _require_user(user_id)
    stay = parse_stay(item)
    resolver = resolver or get_price_resolver()
    price = resolver.price_for_range(stay.apartment, stay.start_date, stay.end_date).total
    now = utc_now()

    with txn() as cur:
        enforce_stay_rules(
            get_property_settings(stay.apartment, cur), stay.start_date, stay.end_date
        )
        require_available(stay, cur)

        cart = repo.get_cart(cur, user_id=user_id, for_update=True)
        if cart is not None and cart.is_expired(now):
            repo.delete_cart(cur, cart_id=cart.id)
            cart = None
        if cart is None:
            cart = repo.create_cart(cur, user_id=user_id, expires_at=now + CART_TTL)

        for held in cart.items:
            if held.apartment_id == stay.apartment.value and overlaps_strict(
                held.start_date, held.end_date, stay.start_date, stay.end_date
            ):
                raise ConflictError(
                    f"cart already holds overlapping dates for {stay.apartment.value}",
                    details={"item_id": held.id, **held.to_stay()},
                )

        added = repo.insert_item(
            cur,
            cart_id=cart.id,
            apartment_id=stay.apartment.value,
            start=stay.start_date,
            end=stay.end_date,
            price=price,
        )
        expires_at = now + CART_TTL
        repo.set_expiry(cur, cart_id=cart.id, expires_at=expires_at)

    logger.info(
        "cart item added",
        extra={
            "extra_fields": {
                "cart_id": cart.id,
                "item_id": added.id,
                "apartment_id": added.apartment_id,
                "items": len(cart.items) + 1,
            }
        },
    )
    return replace(cart, expires_at=expires_at, items=cart.items + (added,))


def _live_cart(cur: PgCursor, user_id: str) -> Cart:
    cart = repo.get_cart(cur, user_id=user_id, for_update=True)
    if cart is None or cart.is_expired(utc_now()):
        raise NotFoundError("cart not found")
    return cart


def remove_item(user_id: str, item_id: str) -> Cart:
    """Raises NotFoundError if there is no live cart or it lacks the item."""
    user_id = _require_user(user_id)
    with txn() as cur:
        cart = _live_cart(cur, user_id)
        if not repo.delete_item(cur, cart_id=cart.id, item_id=item_id):
            raise NotFoundError(f"cart item not found: {item_id}")
    return replace(cart, items=tuple(i for i in cart.items if i.id != item_id))


def clear_cart(user_id: str) -> Cart:
    user_id = _require_user(user_id)
    with txn() as cur:
        cart = _live_cart(cur, user_id)
        repo.clear_items(cur, cart_id=cart.id)
    return replace(cart, items=())


def checkout(
    user_id: str,
    guest_details: dict[str, Any] | None = None,
    *,
    resolver: PriceResolver | None = None,
) -> list[Booking]:
    """Submit every held stay as one booking request, then drop the cart.

    Raises:
        CartExpiredError: The cart expired; it is deleted.
        ValidationError: No cart, or an empty one.
        ConflictError: A held stay was booked or blocked in the meantime.
    """
    user_id = _require_user(user_id)
    now = utc_now()
    with txn() as cur:
        cart = repo.get_cart(cur, user_id=user_id)
        expired = cart is not None and cart.is_expired(now)
        if expired:
            repo.delete_cart(cur, cart_id=cart.id)

    if expired:
        raise CartExpiredError("cart expired", details={"expired_at": cart.expires_at.isoformat()})
    if cart is None or not cart.items:
        raise ValidationError("cart is empty")

    bookings = create_booking_request(
        [item.to_stay() for item in cart.items],
        guest_details,
        user_id,
        resolver=resolver,
    )

    # A failed delete leaves the cart to expire on its own.
    try:
        with txn() as cur:
            repo.delete_cart(cur, cart_id=cart.id)
    except Exception:
        logger.exception(
            "cart cleanup after checkout failed",
            extra={"extra_fields": {"cart_id": cart.id}},
        )

    logger.info(
        "cart checked out",
        extra={
            "extra_fields": {
                "cart_id": cart.id,
                "booking_ids": [b.id for b in bookings],
            }
        },
    )
    return bookings


def purge_expired_carts() -> int:
    """Delete every expired cart. Returns how many were removed."""
    with txn() as cur:
        deleted = repo.delete_expired_carts(cur, now=utc_now())
    logger.info("expired carts purged", extra={"extra_fields": {"deleted": deleted}})
    return deleted
