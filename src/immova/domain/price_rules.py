"""Price rule management.

Every successful mutation invalidates the cached prices of the affected
property (both property keys when an update moves a rule) before returning,
so the next price lookup reads the new rules.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from immova.domain.errors import InvalidRangeError, NotFoundError, ValidationError
from immova.domain.models import PriceRule
from immova.domain.periods import to_utc_date
from immova.domain.pricing import PriceResolver, get_price_resolver
from immova.domain.properties import parse_property
from immova.infra.db import txn
from immova.infra.repositories import price_rules_repository as repo

logger = logging.getLogger(__name__)


def _require_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("name is required")
    return value.strip()


def _to_price(value: Any) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("price_per_night is required")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"price_per_night must be a number, got {value!r}") from None
    if not price.is_finite() or price < 0:
        raise ValidationError("price_per_night must be a non-negative number")
    return price


def _to_priority(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValidationError("priority must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"priority must be an integer, got {value!r}") from None


def _require_rule_range(start: date, end: date) -> None:
    if start >= end:
        raise InvalidRangeError(start, end, "start_date must be before end_date")


def list_rules(prop: str) -> list[PriceRule]:
    """All rules of a property (active or not), best candidate first."""
    key = parse_property(prop)
    with txn() as cur:
        return repo.list_rules(cur, property_key=key.value)


def create_rule(
    data: dict[str, Any],
    *,
    resolver: PriceResolver | None = None,
) -> PriceRule:
    """Create an active price rule.

    Args:
        data: property, name, start_date, end_date, price_per_night and
            optional priority (default 0).

    Raises:
        ValidationError: Missing or invalid field, unknown property.
        InvalidRangeError: If start_date >= end_date.
    """
    prop = parse_property(data.get("property"))
    name = _require_name(data.get("name"))
    if not data.get("start_date") or not data.get("end_date"):
        raise ValidationError("start_date and end_date are required")
    start = to_utc_date(data["start_date"])
    end = to_utc_date(data["end_date"])
    _require_rule_range(start, end)
    price = _to_price(data.get("price_per_night"))
    priority = _to_priority(data.get("priority"))

    with txn() as cur:
        rule = repo.insert_rule(
            cur,
            property_key=prop.value,
            name=name,
            start=start,
            end=end,
            price_per_night=price,
            priority=priority,
        )

    (resolver or get_price_resolver()).invalidate(prop)
    logger.info(
        "price rule created",
        extra={
            "extra_fields": {
                "rule_id": rule.id,
                "property": prop.value,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "priority": priority,
            }
        },
    )
    return rule


def update_rule(
    rule_id: str,
    data: dict[str, Any],
    *,
    resolver: PriceResolver | None = None,
) -> PriceRule:
    """Apply a partial update to a rule.

    The resulting rule is validated as a whole (the new start must still be
    before the stored end, and so on).

    Raises:
        NotFoundError: If the rule does not exist.
        ValidationError: Invalid field value.
        InvalidRangeError: If the resulting start_date >= end_date.
    """
    nulls = sorted(k for k, v in data.items() if v is None)
    if nulls:
        raise ValidationError(f"fields cannot be null: {', '.join(nulls)}")

    changes: dict[str, Any] = {}
    if "property" in data:
        changes["property"] = parse_property(data["property"]).value
    if "name" in data:
        changes["name"] = _require_name(data["name"])
    if "start_date" in data:
        changes["start_date"] = to_utc_date(data["start_date"])
    if "end_date" in data:
        changes["end_date"] = to_utc_date(data["end_date"])
    if "price_per_night" in data:
        changes["price_per_night"] = _to_price(data["price_per_night"])
    if "priority" in data:
        changes["priority"] = _to_priority(data["priority"])
    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        changes["is_active"] = data["is_active"]

    with txn() as cur:
        current = repo.get_rule(cur, rule_id, lock=True)
        if current is None:
            raise NotFoundError(f"price rule not found: {rule_id}")
        _require_rule_range(
            changes.get("start_date", current.start_date),
            changes.get("end_date", current.end_date),
        )
        updated = repo.update_rule(cur, rule_id, changes)

    resolver = resolver or get_price_resolver()
    resolver.invalidate(current.property)
    if updated.property != current.property:
        resolver.invalidate(updated.property)

    logger.info(
        "price rule updated",
        extra={"extra_fields": {"rule_id": rule_id, "fields": sorted(changes)}},
    )
    return updated


def delete_rule(rule_id: str, *, resolver: PriceResolver | None = None) -> PriceRule:
    """Delete a rule and return it.

    Raises:
        NotFoundError: If the rule does not exist.
    """
    with txn() as cur:
        deleted = repo.delete_rule(cur, rule_id)
    if deleted is None:
        raise NotFoundError(f"price rule not found: {rule_id}")

    (resolver or get_price_resolver()).invalidate(deleted.property)
    logger.info(
        "price rule deleted",
        extra={"extra_fields": {"rule_id": rule_id, "property": deleted.property}},
    )
    return deleted


def toggle_rule(rule_id: str, *, resolver: PriceResolver | None = None) -> PriceRule:
    """Flip a rule's is_active flag.

    Raises:
        NotFoundError: If the rule does not exist.
    """
    with txn() as cur:
        current = repo.get_rule(cur, rule_id, lock=True)
        if current is None:
            raise NotFoundError(f"price rule not found: {rule_id}")
        toggled = repo.set_rule_active(cur, rule_id, not current.is_active)

    (resolver or get_price_resolver()).invalidate(toggled.property)
    logger.info(
        "price rule toggled",
        extra={"extra_fields": {"rule_id": rule_id, "is_active": toggled.is_active}},
    )
    return toggled
