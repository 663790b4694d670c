"""Price rule endpoints.

GET: rules of a property, price of a date, prices over a period
POST/PUT/DELETE/PATCH: rule management (cache invalidated on every change)
/prices/cache/*: price cache statistics, warmup and full invalidation
"""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from immova.domain.price_rules import (
    create_rule,
    delete_rule,
    list_rules,
    toggle_rule,
    update_rule,
)
from immova.domain.pricing import PriceResolver, get_price_resolver

router = APIRouter(prefix="/prices", tags=["prices"])


# ── Schemas ───────────────────────────────────────────────


class CreatePriceRuleRequest(BaseModel):
    property: str
    name: str
    start_date: str
    end_date: str
    price_per_night: Decimal
    priority: int = 0


class UpdatePriceRuleRequest(BaseModel):
    property: str | None = None
    name: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    price_per_night: Decimal | None = None
    priority: int | None = None
    is_active: bool | None = None


# ── Reads ─────────────────────────────────────────────────


@router.get("/{property_key}")
def get_rules(property_key: str) -> dict:
    rules = list_rules(property_key)
    return {"result": True, "rules": [r.to_dict() for r in rules]}


@router.get("/{property_key}/date/{day}")
def get_price_for_date(
    property_key: str,
    day: str,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    nightly = resolver.price_for_date(property_key, day)
    return {"result": True, **nightly.to_dict()}


@router.get("/{property_key}/period/{start_date}/{end_date}")
def get_prices_for_period(
    property_key: str,
    start_date: str,
    end_date: str,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    priced = resolver.price_for_range(property_key, start_date, end_date)
    return {"result": True, **priced.to_dict()}


# ── Mutations ─────────────────────────────────────────────


@router.post("", status_code=201)
def post_rule(
    body: CreatePriceRuleRequest,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    rule = create_rule(body.model_dump(), resolver=resolver)
    return {"result": True, "rule": rule.to_dict()}


@router.put("/{rule_id}")
def put_rule(
    rule_id: str,
    body: UpdatePriceRuleRequest,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    """Partial update: only the fields present in the body change."""
    rule = update_rule(rule_id, body.model_dump(exclude_unset=True), resolver=resolver)
    return {"result": True, "rule": rule.to_dict()}


@router.delete("/{rule_id}")
def remove_rule(
    rule_id: str,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    rule = delete_rule(rule_id, resolver=resolver)
    return {"result": True, "message": "Règle de prix supprimée", "rule": rule.to_dict()}


@router.patch("/{rule_id}/toggle")
def patch_toggle_rule(
    rule_id: str,
    resolver: PriceResolver = Depends(get_price_resolver),
) -> dict:
    rule = toggle_rule(rule_id, resolver=resolver)
    return {"result": True, "rule": rule.to_dict()}


# ── Cache ─────────────────────────────────────────────────


@router.get("/cache/stats")
def get_cache_stats(resolver: PriceResolver = Depends(get_price_resolver)) -> dict:
    return {"result": True, "cache": resolver.stats()}


@router.post("/cache/warmup")
def post_cache_warmup(resolver: PriceResolver = Depends(get_price_resolver)) -> dict:
    """Load every property's rule list ahead of the first lookup."""
    resolver.warmup()
    return {"result": True, "cache": resolver.stats()}


@router.post("/cache/invalidate")
def post_cache_invalidate(resolver: PriceResolver = Depends(get_price_resolver)) -> dict:
    removed = resolver.invalidate_all()
    return {"result": True, "removed": removed, "cache": resolver.stats()}
