"""Price resolver - nightly prices from price rules, behind a two-layer cache.

For a property and a date, the applicable price is the one of the first
active rule covering the date, rules being ordered by priority (desc) then
creation time (newest first). With no covering rule, the property's default
nightly price applies.

Cache layers (both keyed under "<property>:" so one prefix drop clears them):
- "<property>:rules"         rule list, PRICE_RULES_CACHE_TTL (default 900s)
- "<property>:daily:<date>"  resolved price, DAILY_PRICE_CACHE_TTL (default 450s)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from immova.domain.models import PriceRule
from immova.domain.periods import iter_dates, nights, require_range, to_utc_date
from immova.domain.properties import (
    DEFAULT_RULE_NAME,
    PropertyKey,
    default_price,
    parse_property,
)
from immova.infra.cache import TTLCache
from immova.infra.db import txn
from immova.infra.repositories.price_rules_repository import list_rules

logger = logging.getLogger(__name__)

DEFAULT_RULES_TTL = 15 * 60
DEFAULT_DAILY_TTL = DEFAULT_RULES_TTL / 2

RuleLoader = Callable[[PropertyKey], list[PriceRule]]


@dataclass(frozen=True)
class NightlyPrice:
    date: date
    property: str
    price: Decimal
    rule_id: str | None
    rule_name: str
    has_rule: bool
    calculated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "property": self.property,
            "price": self.price,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "has_rule": self.has_rule,
            "calculated_at": self.calculated_at.isoformat(),
        }


@dataclass(frozen=True)
class RangePrice:
    property: str
    start_date: date
    end_date: date
    daily_prices: dict[str, Decimal] = field(default_factory=dict)
    total: Decimal = Decimal("0")

    @property
    def nights(self) -> int:
        return len(self.daily_prices)

    @property
    def average_per_night(self) -> Decimal:
        if not self.daily_prices:
            return Decimal("0")
        return (self.total / self.nights).quantize(Decimal("0.01"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "property": self.property,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "daily_prices": self.daily_prices,
            "total": self.total,
            "nights": self.nights,
            "average_per_night": self.average_per_night,
        }


def _env_ttl(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(
            "invalid cache ttl, using default",
            extra={"extra_fields": {"variable": name, "default": default}},
        )
        return default
    return value if value > 0 else default


def load_rules_from_db(prop: PropertyKey) -> list[PriceRule]:
    """Read a property's rules, best candidate first."""
    with txn() as cur:
        return list_rules(cur, property_key=prop.value)


def select_rule(rules: list[PriceRule], day: date) -> PriceRule | None:
    """First active rule covering day. rules must be sorted best first."""
    for rule in rules:
        if rule.is_active and rule.covers(day):
            return rule
    return None


class PriceResolver:
    """Resolve nightly prices through an injected cache.

    Args:
        cache: Shared TTLCache.
        load_rules: Callable returning a property's rules sorted best first.
        rules_ttl: Seconds the rule list stays cached.
        daily_ttl: Seconds a resolved nightly price stays cached.
    """

    def __init__(
        self,
        cache: TTLCache,
        load_rules: RuleLoader = load_rules_from_db,
        *,
        rules_ttl: float = DEFAULT_RULES_TTL,
        daily_ttl: float = DEFAULT_DAILY_TTL,
    ) -> None:
        self._cache = cache
        self._load_rules = load_rules
        self._rules_ttl = rules_ttl
        self._daily_ttl = daily_ttl
        # Bumped by invalidate(); a value computed under an older generation
        # is returned to its caller but never stored.
        self._generations: dict[PropertyKey, int] = {}
        self._generation_lock = threading.Lock()

    @staticmethod
    def _rules_key(prop: PropertyKey) -> str:
        return f"{prop.value}:rules"

    @staticmethod
    def _daily_key(prop: PropertyKey, day: date) -> str:
        return f"{prop.value}:daily:{day.isoformat()}"

    def _generation(self, prop: PropertyKey) -> int:
        with self._generation_lock:
            return self._generations.get(prop, 0)

    def _store(self, prop: PropertyKey, generation: int, key: str, value: Any, ttl: float) -> bool:
        with self._generation_lock:
            if self._generations.get(prop, 0) != generation:
                return False
            self._cache.set(key, value, ttl)
            return True

    def rules_for(self, prop: PropertyKey | str) -> list[PriceRule]:
        prop = parse_property(prop)
        return self._rules(prop, self._generation(prop))

    def _rules(self, prop: PropertyKey, generation: int) -> list[PriceRule]:
        key = self._rules_key(prop)
        rules = self._cache.get(key)
        if rules is None:
            rules = self._load_rules(prop)
            if not self._store(prop, generation, key, rules, self._rules_ttl):
                logger.debug(
                    "rule list changed while loading, not cached",
                    extra={"extra_fields": {"property": prop.value}},
                )
        return rules

    def price_for_date(self, prop: PropertyKey | str, day: date | str) -> NightlyPrice:
        """Nightly price for one date.

        Raises:
            ValidationError: Unknown property or unparseable date.
        """
        prop = parse_property(prop)
        day = to_utc_date(day)
        key = self._daily_key(prop, day)

        generation = self._generation(prop)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        rule = select_rule(self._rules(prop, generation), day)
        result = NightlyPrice(
            date=day,
            property=prop.value,
            price=rule.price_per_night if rule else default_price(prop),
            rule_id=rule.id if rule else None,
            rule_name=rule.name if rule else DEFAULT_RULE_NAME,
            has_rule=rule is not None,
            calculated_at=datetime.now(timezone.utc),
        )
        self._store(prop, generation, key, result, self._daily_ttl)
        return result

    def price_for_range(
        self,
        prop: PropertyKey | str,
        start: date | str,
        end: date | str,
    ) -> RangePrice:
        """Per-night prices over [start, end): the departure day is not charged.

        Raises:
            InvalidRangeError: If start >= end.
        """
        prop = parse_property(prop)
        start_d = to_utc_date(start)
        end_d = to_utc_date(end)
        require_range(start_d, end_d, allow_single_day=False)

        daily: dict[str, Decimal] = {}
        total = Decimal("0")
        for day in iter_dates(start_d, end_d):
            price = self.price_for_date(prop, day).price
            daily[day.isoformat()] = price
            total += price

        logger.debug(
            "range priced",
            extra={
                "extra_fields": {
                    "property": prop.value,
                    "nights": nights(start_d, end_d),
                    "total": str(total),
                }
            },
        )
        return RangePrice(
            property=prop.value,
            start_date=start_d,
            end_date=end_d,
            daily_prices=daily,
            total=total,
        )

    def invalidate(self, prop: PropertyKey | str) -> int:
        """Drop both cache layers for a property. Returns entries removed."""
        prop = parse_property(prop)
        with self._generation_lock:
            self._generations[prop] = self._generations.get(prop, 0) + 1
            removed = self._cache.invalidate_prefix(f"{prop.value}:")
        logger.info(
            "price cache invalidated",
            extra={"extra_fields": {"property": prop.value, "entries": removed}},
        )
        return removed

    def invalidate_all(self) -> int:
        return sum(self.invalidate(p) for p in PropertyKey)

    def warmup(self) -> None:
        """Load the rule list of every property into the cache."""
        for prop in PropertyKey:
            self.rules_for(prop)

    def stats(self) -> dict[str, Any]:
        return self._cache.stats()


_resolver: PriceResolver | None = None
_resolver_lock = threading.Lock()


def get_price_resolver() -> PriceResolver:
    """Process-wide resolver, built on first use from the environment."""
    global _resolver
    if _resolver is None:
        with _resolver_lock:
            if _resolver is None:
                rules_ttl = _env_ttl("PRICE_RULES_CACHE_TTL", DEFAULT_RULES_TTL)
                daily_ttl = _env_ttl("DAILY_PRICE_CACHE_TTL", DEFAULT_DAILY_TTL)
                _resolver = PriceResolver(
                    TTLCache(default_ttl=rules_ttl),
                    rules_ttl=rules_ttl,
                    daily_ttl=daily_ttl,
                )
    return _resolver


def reset_price_resolver(resolver: PriceResolver | None = None) -> None:
    """Replace (or drop) the process-wide resolver. Used by tests."""
    global _resolver
    with _resolver_lock:
        _resolver = resolver
