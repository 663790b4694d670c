"""Guest cart endpoints.

The caller's identity arrives in the X-User-Id header, set by the
authenticating gateway in front of this service.

GET /cart: current cart (a new empty one if none is live)
POST /cart/items: hold a stay
DELETE /cart/items: empty the cart
DELETE /cart/items/{item_id}: drop one stay
POST /cart/checkout: submit every held stay as a booking request
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, Field

from immova.api.routes.bookings import GuestDetails, StayItem, booking_summary
from immova.domain.cart import add_item, checkout, clear_cart, get_cart, remove_item
from immova.domain.pricing import PriceResolver, get_price_resolver

router = APIRouter(prefix="/cart", tags=["cart"])


class CheckoutBody(BaseModel):
    guest_details: GuestDetails = Field(default_factory=GuestDetails)


@router.get("")
def get_current_cart(x_user_id: str = Header()) -> dict:
    return {"result": True, "cart": get_cart(x_user_id).to_dict()}


@router.post("/items", status_code=201)
def post_item(
    body: StayItem,
    x_user_id: str = Header(),
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    cart = add_item(x_user_id, body.model_dump(), resolver=resolver)
    return {"result": True, "cart": cart.to_dict()}


@router.delete("/items")
def delete_items(x_user_id: str = Header()) -> dict:
    return {"result": True, "cart": clear_cart(x_user_id).to_dict()}


@router.delete("/items/{item_id}")
def delete_item(item_id: str, x_user_id: str = Header()) -> dict:
    return {"result": True, "cart": remove_item(x_user_id, item_id).to_dict()}


@router.post("/checkout", status_code=201)
def post_checkout(
    body: CheckoutBody | None = None,
    x_user_id: str = Header(),
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    guest = (body or CheckoutBody()).guest_details.model_dump()
    bookings = checkout(x_user_id, guest, resolver=resolver)
    return {
        "result": True,
        "message": "Demande envoyée à l'hôte",
        "bookings": [booking_summary(b) for b in bookings],
    }
