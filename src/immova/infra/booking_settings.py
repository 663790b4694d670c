"""Booking settings: service fees and stay rules, global and per property.

Values live in the global_settings table. A per-property key is the global
name with the property's short suffix (cleaning_fee_valery,
minimum_nights_touquet, ...).

Lookup order for a property:
1. Per-property database value
2. Global database value (cleaning_fee, linen_option_price, minimum_nights_default)
3. Environment variable (CLEANING_FEE, LINEN_OPTION_PRICE, MINIMUM_NIGHTS)
4. Built-in defaults

Weekdays follow date.weekday(): 0 is Monday, 6 is Sunday.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from psycopg2.extensions import cursor as PgCursor
from psycopg2.extras import Json

from immova.domain.properties import PropertyKey

from .db import fetchall, txn

CLEANING_FEE_KEY = "cleaning_fee"
LINEN_OPTION_PRICE_KEY = "linen_option_price"
MINIMUM_NIGHTS_DEFAULT_KEY = "minimum_nights_default"

SETTING_KEYS = (CLEANING_FEE_KEY, LINEN_OPTION_PRICE_KEY, MINIMUM_NIGHTS_DEFAULT_KEY)

# Names accepted by update_property_settings, stored as "<name>_<suffix>"
PROPERTY_SETTING_NAMES = (
    "cleaning_fee",
    "linen_option_price",
    "minimum_nights",
    "fixed_arrival_days",
    "fixed_departure_days",
)

PROPERTY_SUFFIXES: dict[PropertyKey, str] = {
    PropertyKey.VALERY_SOURCES_BAIE: "valery",
    PropertyKey.TOUQUET_PINEDE: "touquet",
}

_DESCRIPTIONS = {
    "cleaning_fee": "Frais de ménage pour {}",
    "linen_option_price": "Prix option linge pour {}",
    "minimum_nights": "Nombre minimum de nuits pour {}",
    "fixed_arrival_days": "Jours d'arrivée autorisés pour {}",
    "fixed_departure_days": "Jours de départ autorisés pour {}",
}


@dataclass(frozen=True)
class ServiceFees:
    """Per-stay prices of the optional services.

    Attributes:
        cleaning_fee: Charged when the guest asks for final cleaning.
        linen_option_price: Charged when the guest asks for bed linen.
    """

    cleaning_fee: Decimal = Decimal("0")
    linen_option_price: Decimal = Decimal("25")


@dataclass(frozen=True)
class PropertySettings:
    """Fees and stay rules that apply to one property.

    Attributes:
        fees: Optional service prices.
        minimum_nights: Shortest stay accepted.
        fixed_arrival_days: Weekdays a stay may start on (empty = any day).
        fixed_departure_days: Weekdays a stay may end on (empty = any day).
    """

    property: PropertyKey
    fees: ServiceFees = ServiceFees()
    minimum_nights: int = 1
    fixed_arrival_days: tuple[int, ...] = ()
    fixed_departure_days: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "cleaning_fee": self.fees.cleaning_fee,
            "linen_option_price": self.fees.linen_option_price,
            "minimum_nights": self.minimum_nights,
            "fixed_arrival_days": list(self.fixed_arrival_days),
            "fixed_departure_days": list(self.fixed_departure_days),
        }


def property_setting_key(prop: PropertyKey, name: str) -> str:
    return f"{name}_{PROPERTY_SUFFIXES[prop]}"


def get_service_fees(cur: PgCursor | None = None) -> ServiceFees:
    """Load the global service fees.

    Args:
        cur: Optional cursor to read within an existing transaction.
    """
    db_values = _load(cur, SETTING_KEYS)
    return _merge_fees({}, db_values)


def get_property_settings(prop: PropertyKey, cur: PgCursor | None = None) -> PropertySettings:
    """Load fees and stay rules for one property.

    Args:
        prop: Property to resolve.
        cur: Optional cursor to read within an existing transaction.
    """
    own_keys = {name: property_setting_key(prop, name) for name in PROPERTY_SETTING_NAMES}
    db_values = _load(cur, SETTING_KEYS + tuple(own_keys.values()))
    own = {name: db_values.get(key) for name, key in own_keys.items() if key in db_values}

    minimum = _to_min_nights(own.get("minimum_nights"))
    if minimum is None:
        minimum = _to_min_nights(db_values.get(MINIMUM_NIGHTS_DEFAULT_KEY))
    if minimum is None:
        minimum = _to_min_nights(os.environ.get("MINIMUM_NIGHTS"))

    return PropertySettings(
        property=prop,
        fees=_merge_fees(own, db_values),
        minimum_nights=minimum if minimum is not None else 1,
        fixed_arrival_days=_to_weekdays(own.get("fixed_arrival_days")) or (),
        fixed_departure_days=_to_weekdays(own.get("fixed_departure_days")) or (),
    )


def update_setting(key: str, value: Any, description: str) -> None:
    """Insert or replace a global setting.

    Raises:
        ValueError: If key is not a known setting.
    """
    if key not in SETTING_KEYS:
        raise ValueError(f"Unknown setting: {key}")

    with txn() as cur:
        _upsert(cur, key, value, description)


def update_property_settings(prop: PropertyKey, settings: dict[str, Any]) -> PropertySettings:
    """Validate and store several per-property settings in one transaction.

    Raises:
        ValueError: Unknown name, or a value of the wrong type or range.
    """
    if not settings:
        raise ValueError("settings must not be empty")

    unknown = sorted(set(settings) - set(PROPERTY_SETTING_NAMES))
    if unknown:
        raise ValueError(f"Unknown property setting: {', '.join(unknown)}")

    checked = {name: _check_property_value(name, value) for name, value in settings.items()}

    suffix = PROPERTY_SUFFIXES[prop]
    with txn() as cur:
        for name, value in checked.items():
            _upsert(
                cur,
                property_setting_key(prop, name),
                value,
                _DESCRIPTIONS[name].format(suffix),
            )
        return get_property_settings(prop, cur)


def _upsert(cur: PgCursor, key: str, value: Any, description: str) -> None:
    cur.execute(
        """
        INSERT INTO global_settings (setting_key, setting_value, description)
        VALUES (%s, %s, %s)
        ON CONFLICT (setting_key) DO UPDATE
        SET setting_value = EXCLUDED.setting_value,
            description = EXCLUDED.description,
            updated_at = now()
        """,
        (key, Json(value), description),
    )


def _load(cur: PgCursor | None, keys: tuple[str, ...]) -> dict[str, Any]:
    if cur is None:
        with txn() as c:
            return _load_from_db(c, keys)
    return _load_from_db(cur, keys)


def _load_from_db(cur: PgCursor, keys: tuple[str, ...]) -> dict[str, Any]:
    rows = fetchall(
        cur,
        "SELECT setting_key, setting_value FROM global_settings WHERE setting_key = ANY(%s)",
        (list(keys),),
    )
    return {key: value for key, value in rows if value is not None}


def _check_property_value(name: str, value: Any) -> Any:
    if name in ("cleaning_fee", "linen_option_price"):
        amount = _to_amount(value)
        if amount is None:
            raise ValueError(f"{name} must be a non-negative amount")
        return float(amount)
    if name == "minimum_nights":
        nights = _to_min_nights(value)
        if nights is None:
            raise ValueError("minimum_nights must be an integer >= 1")
        return nights
    days = _to_weekdays(value)
    if days is None:
        raise ValueError(f"{name} must be a list of weekdays 0-6")
    return list(days)


def _to_amount(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() and amount >= 0 else None


def _to_min_nights(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        nights = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if nights != value and str(nights) != str(value).strip():
        return None
    return nights if nights >= 1 else None


def _to_weekdays(value: Any) -> tuple[int, ...] | None:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        return None
    days = set()
    for day in value:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            return None
        days.add(day)
    return tuple(sorted(days))


def _merge_fees(own: dict[str, Any], db_values: dict[str, Any]) -> ServiceFees:
    """Merge property values, global values and environment fallbacks."""
    defaults = ServiceFees()

    cleaning = _to_amount(own.get(CLEANING_FEE_KEY))
    if cleaning is None:
        cleaning = _to_amount(db_values.get(CLEANING_FEE_KEY))
    if cleaning is None:
        cleaning = _to_amount(os.environ.get("CLEANING_FEE"))

    linen = _to_amount(own.get(LINEN_OPTION_PRICE_KEY))
    if linen is None:
        linen = _to_amount(db_values.get(LINEN_OPTION_PRICE_KEY))
    if linen is None:
        linen = _to_amount(os.environ.get("LINEN_OPTION_PRICE"))

    return ServiceFees(
        cleaning_fee=cleaning if cleaning is not None else defaults.cleaning_fee,
        linen_option_price=linen if linen is not None else defaults.linen_option_price,
    )
