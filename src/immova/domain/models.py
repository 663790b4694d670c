"""Entities of the availability and pricing engine, and the guest cart."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

BOOKING_STATUSES = ("pending", "accepted", "refused", "confirmed", "cancelled")

# Statuses that occupy the apartment for availability purposes
ACTIVE_BOOKING_STATUSES = ("pending", "accepted", "confirmed")

DEFAULT_BLOCK_REASON = "Non spécifié"


@dataclass(frozen=True)
class BlockedPeriod:
    """Admin-declared unavailable range, both endpoints are calendar dates."""

    id: str
    apartment_id: str
    start_date: date
    end_date: date
    reason: str = DEFAULT_BLOCK_REASON

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "apartment_id": self.apartment_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class Booking:
    """A stay: start_date is arrival, end_date is departure (not a night)."""

    id: str
    apartment_id: str
    start_date: date
    end_date: date
    status: str
    price: Decimal
    total_price: Decimal
    user_id: str | None = None
    booked_at: datetime | None = None
    processed_at: datetime | None = None
    guest_details: dict[str, Any] = field(default_factory=dict)
    additional_services: dict[str, Any] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "apartment_id": self.apartment_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status,
            "price": self.price,
            "total_price": self.total_price,
            "booked_at": self.booked_at.isoformat() if self.booked_at else None,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "guest_details": self.guest_details,
            "additional_services": self.additional_services,
        }


@dataclass(frozen=True)
class PriceRule:
    """Date-ranged nightly price for one property (both endpoints included)."""

    id: str
    property: str
    name: str
    start_date: date
    end_date: date
    price_per_night: Decimal
    is_active: bool = True
    priority: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "property": self.property,
            "name": self.name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "price_per_night": self.price_per_night,
            "is_active": self.is_active,
            "priority": self.priority,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class CartItem:
    """A stay held in a cart, priced when it was added."""

    id: str
    apartment_id: str
    start_date: date
    end_date: date
    price: Decimal

    def to_stay(self) -> dict[str, Any]:
        return {
            "apartment_id": self.apartment_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_stay(), "price": self.price}


@dataclass(frozen=True)
class Cart:
    """A user's pending selection of stays. Gone once expires_at has passed."""

    id: str
    user_id: str
    expires_at: datetime
    items: tuple[CartItem, ...] = ()

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    @property
    def total(self) -> Decimal:
        return sum((item.price for item in self.items), Decimal("0"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "expires_at": self.expires_at.isoformat(),
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
        }
