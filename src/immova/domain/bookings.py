"""Booking request workflow.

A guest submits one or more stays (cart items). Each item is checked against
the calendar, priced server-side, and stored as a 'pending' booking; the host
then accepts or refuses it (from the admin UI or a one-click e-mail link).
Status moves go through immova.domain.booking_status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from immova.domain.availability import check_availability
from immova.domain.booking_status import transition_booking
from immova.domain.errors import ConflictError, ValidationError
from immova.domain.models import BOOKING_STATUSES, Booking
from immova.domain.notifications import notify_bookings_created
from immova.domain.periods import overlaps_strict, require_range, to_utc_date
from immova.domain.pricing import PriceResolver, get_price_resolver
from immova.domain.properties import PropertyKey, parse_property
from immova.infra.booking_settings import PropertySettings, ServiceFees, get_property_settings
from immova.infra.db import txn
from immova.infra.repositories import bookings_repository as repo
from immova.observability.redaction import summarize_guest_details

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class StayRequest:
    apartment: PropertyKey
    start_date: date
    end_date: date


def parse_stay(item: Any, index: int = 0) -> StayRequest:
    """Validate one {apartment_id, start_date, end_date} item.

    Raises:
        ValidationError: Not an object, missing dates, unknown apartment.
        InvalidRangeError: start_date >= end_date.
    """
    if not isinstance(item, dict):
        raise ValidationError(f"item {index} must be an object")
    if not item.get("start_date") or not item.get("end_date"):
        raise ValidationError(f"item {index}: start_date and end_date are required")
    stay = StayRequest(
        apartment=parse_property(item.get("apartment_id")),
        start_date=to_utc_date(item["start_date"]),
        end_date=to_utc_date(item["end_date"]),
    )
    require_range(stay.start_date, stay.end_date, allow_single_day=False)
    return stay


def _parse_items(items: Any) -> list[StayRequest]:
    if not items:
        raise ValidationError("booking request has no items")
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    return [parse_stay(item, index) for index, item in enumerate(items)]


def _reject_overlapping_items(stays: list[StayRequest]) -> None:
    for i, a in enumerate(stays):
        for b in stays[i + 1:]:
            if a.apartment == b.apartment and overlaps_strict(
                a.start_date, a.end_date, b.start_date, b.end_date
            ):
                raise ConflictError(
                    f"request contains overlapping stays for {a.apartment.value}",
                    details={
                        "apartment_id": a.apartment.value,
                        "stays": [
                            [a.start_date.isoformat(), a.end_date.isoformat()],
                            [b.start_date.isoformat(), b.end_date.isoformat()],
                        ],
                    },
                )


def normalize_guest_details(details: dict[str, Any] | None) -> dict[str, Any]:
    """Fill defaults for the guest details block."""
    details = details or {}
    adults = details.get("adults") or 1
    if not isinstance(adults, int) or isinstance(adults, bool) or adults < 1:
        raise ValidationError("adults must be a positive integer")
    return {
        "adults": adults,
        "children": details.get("children") or [],
        "pets": details.get("pets") or [],
        "special_requests": details.get("special_requests") or "",
        "arrival_time": details.get("arrival_time") or "",
        "contact_phone": details.get("contact_phone") or "",
        "include_cleaning": bool(details.get("include_cleaning")),
        "include_linen": bool(details.get("include_linen")),
    }


def additional_services(guest: dict[str, Any], fees: ServiceFees) -> dict[str, Any]:
    cleaning = fees.cleaning_fee if guest["include_cleaning"] else Decimal("0")
    linen = fees.linen_option_price if guest["include_linen"] else Decimal("0")
    return {
        "cleaning": {"included": guest["include_cleaning"], "price": str(cleaning)},
        "linen": {"included": guest["include_linen"], "price": str(linen)},
    }


def services_total(services: dict[str, Any]) -> Decimal:
    return sum((Decimal(s["price"]) for s in services.values()), Decimal("0"))


WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def enforce_stay_rules(settings: PropertySettings, start: date, end: date) -> None:
    """Check a stay against the property's minimum length and fixed weekdays.

    Raises:
        ValidationError: Stay too short, or arrival or departure on a day the
            property does not allow.
    """
    apartment = settings.property.value
    nights = (end - start).days
    if nights < settings.minimum_nights:
        raise ValidationError(
            f"{apartment} requires at least {settings.minimum_nights} night(s)",
            details={
                "apartment_id": apartment,
                "nights": nights,
                "minimum_nights": settings.minimum_nights,
            },
        )
    for label, day, allowed in (
        ("arrival", start, settings.fixed_arrival_days),
        ("departure", end, settings.fixed_departure_days),
    ):
        if allowed and day.weekday() not in allowed:
            raise ValidationError(
                f"{label} on {WEEKDAY_NAMES[day.weekday()]} {day.isoformat()} not allowed for {apartment}",
                details={
                    "apartment_id": apartment,
                    f"{label}_date": day.isoformat(),
                    f"fixed_{label}_days": list(allowed),
                },
            )


def require_available(stay: StayRequest, cur: PgCursor) -> None:
    """Raise ConflictError if a block or an active booking meets the stay."""
    availability = check_availability(stay.apartment, stay.start_date, stay.end_date, cur=cur)
    if not availability.available:
        found = availability.to_dict()
        raise ConflictError(
            f"dates not available for {stay.apartment.value}",
            conflicts=found["blocked_conflicts"] + found["booking_conflicts"],
            details={
                "apartment_id": stay.apartment.value,
                "start_date": stay.start_date.isoformat(),
                "end_date": stay.end_date.isoformat(),
            },
        )


def create_booking_request(
    items: list[dict[str, Any]],
    guest_details: dict[str, Any] | None = None,
    user_id: str | None = None,
    *,
    resolver: PriceResolver | None = None,
) -> list[Booking]:
    """Create pending bookings for every requested stay.

    All stays are validated and checked before anything is written; the
    bookings are inserted in one transaction, then the host is notified.
    Notification failures never undo the request.

    Raises:
        ValidationError: Empty request, malformed item, unknown apartment,
            or a stay that breaks the property's stay rules.
        InvalidRangeError: An item with start_date >= end_date.
        ConflictError: Items overlap each other, or an item is unavailable.
    """
    stays = _parse_items(items)
    _reject_overlapping_items(stays)
    guest = normalize_guest_details(guest_details)
    resolver = resolver or get_price_resolver()

    priced = [
        (stay, resolver.price_for_range(stay.apartment, stay.start_date, stay.end_date).total)
        for stay in stays
    ]

    stored_guest = {
        k: v for k, v in guest.items() if k not in ("include_cleaning", "include_linen")
    }

    with txn() as cur:
        settings: dict[PropertyKey, PropertySettings] = {}
        created = []
        for stay, base_price in priced:
            if stay.apartment not in settings:
                settings[stay.apartment] = get_property_settings(stay.apartment, cur)
            enforce_stay_rules(settings[stay.apartment], stay.start_date, stay.end_date)
            services = additional_services(guest, settings[stay.apartment].fees)

            require_available(stay, cur)
            created.append(
                repo.insert_booking(
                    cur,
                    apartment_id=stay.apartment.value,
                    start=stay.start_date,
                    end=stay.end_date,
                    price=base_price,
                    total_price=base_price + services_total(services),
                    user_id=user_id,
                    guest_details=stored_guest,
                    additional_services=services,
                )
            )

    logger.info(
        "booking request created",
        extra={
            "extra_fields": {
                "booking_ids": [b.id for b in created],
                "items": len(created),
                "guest": summarize_guest_details(guest),
            }
        },
    )

    notify_bookings_created(created)
    return created


def _transition(booking_id: str, to_status: str) -> Booking:
    with txn() as cur:
        return transition_booking(cur, booking_id, to_status)


def accept_booking(booking_id: str) -> Booking:
    return _transition(booking_id, "accepted")


def refuse_booking(booking_id: str) -> Booking:
    return _transition(booking_id, "refused")


def confirm_booking(booking_id: str) -> Booking:
    """Mark an accepted booking confirmed once payment has been captured."""
    return _transition(booking_id, "confirmed")


def cancel_booking(booking_id: str) -> Booking:
    return _transition(booking_id, "cancelled")


def list_bookings(
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Page through bookings, newest first.

    Raises:
        ValidationError: Unknown status, page < 1, or limit outside 1..100.
    """
    if status is not None and status not in BOOKING_STATUSES:
        raise ValidationError(f"unknown status: {status}")
    if page < 1:
        raise ValidationError("page must be >= 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    with txn() as cur:
        bookings, total = repo.list_bookings(
            cur, status=status, limit=limit, offset=(page - 1) * limit
        )

    pages = (total + limit - 1) // limit
    return {
        "bookings": bookings,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": pages,
            "has_next": page < pages,
            "has_prev": page > 1,
        },
    }
