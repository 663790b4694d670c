"""Rentable properties and their fallback nightly prices."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from immova.domain.errors import ValidationError


class PropertyKey(str, Enum):
    """Closed set of apartments. The value is the public apartment id."""

    VALERY_SOURCES_BAIE = "valery-sources-baie"
    TOUQUET_PINEDE = "touquet-pinede"


# Nightly price used when no active price rule covers a date
DEFAULT_NIGHTLY_PRICES: dict[PropertyKey, Decimal] = {
    PropertyKey.VALERY_SOURCES_BAIE: Decimal("120"),
    PropertyKey.TOUQUET_PINEDE: Decimal("150"),
}

DEFAULT_RULE_NAME = "Prix par défaut"


def parse_property(value: str | PropertyKey | None) -> PropertyKey:
    """Map an apartment id / property key to PropertyKey.

    Raises:
        ValidationError: If the key is missing or unknown.
    """
    if isinstance(value, PropertyKey):
        return value
    if not value:
        raise ValidationError("apartment_id is required")
    try:
        return PropertyKey(value.strip())
    except ValueError:
        raise ValidationError(f"unknown apartment: {value}") from None


def default_price(prop: PropertyKey) -> Decimal:
    return DEFAULT_NIGHTLY_PRICES[prop]
