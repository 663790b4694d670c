"""Calendar endpoints: blocking, availability, disabled dates, rules, prices.

Dates are ISO strings (YYYY-MM-DD, or a full instant reduced to its UTC
date).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from immova.domain.availability import check_availability
from immova.domain.blocking import (
    block_range,
    list_blocked_periods,
    unblock_period,
    unblock_range,
)
from immova.domain.disabled_dates import expand_disabled_dates
from immova.domain.pricing import PriceResolver, get_price_resolver
from immova.domain.properties import parse_property
from immova.infra.booking_settings import get_property_settings

router = APIRouter(prefix="/calendar", tags=["calendar"])


# ── Schemas ───────────────────────────────────────────────


class DateRangeRequest(BaseModel):
    apartment_id: str = Field(min_length=1)
    start_date: str = Field(min_length=1)
    end_date: str = Field(min_length=1)


class BlockDatesRequest(DateRangeRequest):
    reason: str | None = Field(default=None, max_length=500)


# ── Blocked periods ───────────────────────────────────────


@router.post("/block-dates", status_code=201)
def block_dates(body: BlockDatesRequest) -> dict:
    """Block [start_date, end_date], both days included."""
    period = block_range(body.apartment_id, body.start_date, body.end_date, body.reason)
    return {
        "result": True,
        "message": "Dates bloquées avec succès",
        "blocked_period": period.to_dict(),
    }


@router.post("/unblock-dates")
def unblock_dates(body: DateRangeRequest) -> dict:
    """Release [start_date, end_date], splitting the periods that straddle it."""
    result = unblock_range(body.apartment_id, body.start_date, body.end_date)
    return {
        "result": True,
        "message": (
            f"Déblocage effectué : {result.deleted_count} période(s) supprimée(s), "
            f"{result.created_count} nouvelle(s) période(s) créée(s)"
        ),
        **result.to_dict(),
    }


@router.delete("/blocked-periods/{period_id}")
def delete_blocked_period(period_id: str) -> dict:
    unblock_period(period_id)
    return {"result": True, "message": "Période débloquée avec succès"}


@router.get("/blocked-dates")
def get_blocked_dates(apartment_id: str) -> dict:
    periods = list_blocked_periods(apartment_id)
    return {"result": True, "blocked_dates": [p.to_dict() for p in periods]}


# ── Availability ──────────────────────────────────────────


@router.post("/check-availability")
def post_check_availability(body: DateRangeRequest) -> dict:
    """Check a stay from start_date (arrival) to end_date (departure)."""
    availability = check_availability(body.apartment_id, body.start_date, body.end_date)
    return {"result": True, **availability.to_dict()}


@router.get("/disabled-dates")
def get_disabled_dates(apartment_id: str) -> dict:
    """Dates a new stay may not occupy, and departure days open for arrival."""
    expanded = expand_disabled_dates(apartment_id)
    return {"result": True, **expanded.to_dict()}


@router.get("/booking-rules")
def get_booking_rules(apartment_id: str) -> dict:
    """Minimum stay and allowed arrival/departure weekdays (0 is Monday)."""
    settings = get_property_settings(parse_property(apartment_id))
    return {
        "result": True,
        "apartment_id": settings.property.value,
        "minimum_nights": settings.minimum_nights,
        "fixed_arrival_days": list(settings.fixed_arrival_days),
        "fixed_departure_days": list(settings.fixed_departure_days),
    }


# ── Prices ────────────────────────────────────────────────


@router.get("/prices")
def get_range_prices(
    apartment_id: str,
    start_date: str,
    end_date: str,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    """Per-night prices from arrival to departure (departure not charged)."""
    priced = resolver.price_for_range(apartment_id, start_date, end_date)
    return {"result": True, **priced.to_dict()}


@router.get("/price/{apartment_id}/{day}")
def get_nightly_price(
    apartment_id: str,
    day: str,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    nightly = resolver.price_for_date(apartment_id, day)
    return {"result": True, **nightly.to_dict()}
