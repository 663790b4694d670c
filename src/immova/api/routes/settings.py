"""Booking settings: global service fees and per-property stay rules."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from immova.domain.errors import ValidationError
from immova.domain.properties import parse_property
from immova.infra.booking_settings import (
    get_property_settings,
    get_service_fees,
    update_property_settings,
    update_setting,
)

router = APIRouter(prefix="/settings", tags=["settings"])


class UpdateSettingRequest(BaseModel):
    value: Decimal = Field(ge=0)
    description: str = ""


class UpdatePropertySettingsRequest(BaseModel):
    settings: dict[str, Any]


def _fees_dict() -> dict:
    fees = get_service_fees()
    return {
        "cleaning_fee": fees.cleaning_fee,
        "linen_option_price": fees.linen_option_price,
    }


@router.get("/service-fees")
def get_fees() -> dict:
    return {"result": True, "settings": _fees_dict()}


@router.get("/fees/{property_key}")
def get_property_fees(property_key: str) -> dict:
    """Service fees for one property, as priced on a booking request."""
    prop = parse_property(property_key)
    fees = get_property_settings(prop).fees
    return {
        "result": True,
        "property": prop.value,
        "fees": {"cleaning": fees.cleaning_fee, "linen": fees.linen_option_price},
    }


@router.get("/property/{property_key}")
def get_property(property_key: str) -> dict:
    prop = parse_property(property_key)
    return {
        "result": True,
        "property": prop.value,
        "settings": get_property_settings(prop).to_dict(),
    }


@router.post("/property/{property_key}")
def post_property(property_key: str, body: UpdatePropertySettingsRequest) -> dict:
    prop = parse_property(property_key)
    try:
        updated = update_property_settings(prop, body.settings)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return {
        "result": True,
        "property": prop.value,
        "settings": updated.to_dict(),
        "message": f"Paramètres mis à jour pour {prop.value}",
    }


@router.put("/{setting_key}")
def put_setting(setting_key: str, body: UpdateSettingRequest) -> dict:
    try:
        update_setting(setting_key, float(body.value), body.description)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return {"result": True, "settings": _fees_dict()}
