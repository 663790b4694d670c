"""Booking request endpoints.

POST /bookings/requests: guest submits one or more stays
GET /bookings: admin listing with pagination
POST /bookings/{id}/accept|refuse|confirm|cancel: status changes
GET /bookings/email-action/{token}: one-click link from the host e-mail
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from immova.domain.bookings import (
    accept_booking,
    cancel_booking,
    confirm_booking,
    create_booking_request,
    list_bookings,
    refuse_booking,
)
from immova.domain.email_actions import execute_token_action
from immova.domain.models import Booking
from immova.domain.pricing import PriceResolver, get_price_resolver

router = APIRouter(prefix="/bookings", tags=["bookings"])


# ── Schemas ───────────────────────────────────────────────


class StayItem(BaseModel):
    apartment_id: str
    start_date: str
    end_date: str


class GuestDetails(BaseModel):
    adults: int = Field(default=1, ge=1)
    children: list[Any] = Field(default_factory=list)
    pets: list[Any] = Field(default_factory=list)
    special_requests: str = Field(default="", max_length=2000)
    arrival_time: str = ""
    contact_phone: str = ""
    include_cleaning: bool = False
    include_linen: bool = False


class BookingRequestBody(BaseModel):
    items: list[StayItem]
    guest_details: GuestDetails = Field(default_factory=GuestDetails)
    user_id: str | None = None


def booking_summary(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "apartment_id": booking.apartment_id,
        "start_date": booking.start_date.isoformat(),
        "end_date": booking.end_date.isoformat(),
        "price": booking.price,
        "total_price": booking.total_price,
        "status": booking.status,
    }


# ── Requests ──────────────────────────────────────────────


@router.post("/requests", status_code=201)
def post_booking_request(
    body: BookingRequestBody,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    bookings = create_booking_request(
        [item.model_dump() for item in body.items],
        body.guest_details.model_dump(),
        body.user_id,
        resolver=resolver,
    )
    return {
        "result": True,
        "message": "Demande envoyée à l'hôte",
        "bookings": [booking_summary(b) for b in bookings],
    }


@router.get("")
def get_bookings(
    status: str | None = None,
    page: int = Query(default=1),
    limit: int = Query(default=20),
) -> dict:
    listing = list_bookings(status=status, page=page, limit=limit)
    return {
        "result": True,
        "bookings": [b.to_dict() for b in listing["bookings"]],
        "pagination": listing["pagination"],
    }


# ── Status changes ────────────────────────────────────────


@router.get("/email-action/{token}")
def get_email_action(token: str) -> dict:
    outcome = execute_token_action(token)
    return {
        "result": True,
        "action": outcome.action,
        "booking": booking_summary(outcome.booking),
    }


@router.post("/{booking_id}/accept")
def post_accept(booking_id: str) -> dict:
    return {"result": True, "booking": booking_summary(accept_booking(booking_id))}


@router.post("/{booking_id}/refuse")
def post_refuse(booking_id: str) -> dict:
    return {"result": True, "booking": booking_summary(refuse_booking(booking_id))}


@router.post("/{booking_id}/confirm")
def post_confirm(booking_id: str) -> dict:
    return {"result": True, "booking": booking_summary(confirm_booking(booking_id))}


@router.post("/{booking_id}/cancel")
def post_cancel(booking_id: str) -> dict:
    return {"result": True, "booking": booking_summary(cancel_booking(booking_id))}
