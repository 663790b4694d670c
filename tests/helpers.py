"""Shared test helper functions (not fixtures)."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from immova.domain.models import BlockedPeriod, Booking, Cart, CartItem, PriceRule


def d(iso: str) -> date:
    return date.fromisoformat(iso)


def make_period(
    start: str,
    end: str,
    *,
    period_id: str = "bp-1",
    apartment_id: str = "valery-sources-baie",
    reason: str = "Travaux",
) -> BlockedPeriod:
    return BlockedPeriod(
        id=period_id,
        apartment_id=apartment_id,
        start_date=d(start),
        end_date=d(end),
        reason=reason,
    )


def make_booking(
    start: str,
    end: str,
    *,
    booking_id: str = "bk-1",
    apartment_id: str = "valery-sources-baie",
    status: str = "pending",
    price: str = "600",
    total_price: str = "625",
) -> Booking:
    return Booking(
        id=booking_id,
        apartment_id=apartment_id,
        start_date=d(start),
        end_date=d(end),
        status=status,
        price=Decimal(price),
        total_price=Decimal(total_price),
        booked_at=datetime(2025, 8, 1, 10, 0, tzinfo=timezone.utc),
    )


def make_rule(
    start: str,
    end: str,
    price: str,
    *,
    rule_id: str = "rule-1",
    prop: str = "valery-sources-baie",
    name: str = "Haute saison",
    priority: int = 0,
    is_active: bool = True,
) -> PriceRule:
    return PriceRule(
        id=rule_id,
        property=prop,
        name=name,
        start_date=d(start),
        end_date=d(end),
        price_per_night=Decimal(price),
        is_active=is_active,
        priority=priority,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


def make_cart_item(
    start: str,
    end: str,
    price: str = "300",
    *,
    item_id: str = "item-1",
    apartment_id: str = "touquet-pinede",
) -> CartItem:
    return CartItem(
        id=item_id,
        apartment_id=apartment_id,
        start_date=d(start),
        end_date=d(end),
        price=Decimal(price),
    )


def make_cart(
    *items: CartItem,
    cart_id: str = "cart-1",
    user_id: str = "user-1",
    expires_at: datetime = datetime(2025, 9, 1, 10, 30, tzinfo=timezone.utc),
) -> Cart:
    return Cart(id=cart_id, user_id=user_id, expires_at=expires_at, items=tuple(items))


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
