"""In-process TTL cache used by the price resolver.

Entries expire after their time-to-live; the oldest entries are evicted once
``max_size`` is reached. Invalidation is synchronous: when ``invalidate`` or
``invalidate_prefix`` returns, no later ``get`` can observe the removed
entries.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TTLCache:
    """Thread-safe LRU map with per-entry expiry.

    Args:
        default_ttl: Seconds an entry lives when ``set`` gets no ttl.
        max_size: Upper bound on stored entries.
        clock: Monotonic seconds source (injectable for tests).
    """

    def __init__(
        self,
        *,
        default_ttl: float,
        max_size: int = 4096,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._clock = clock
        self._store: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._store[key]
                self._misses += 1
                return None
            self._store.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = self._clock() + (ttl if ttl is not None else self._default_ttl)
        with self._lock:
            self._store[key] = (value, expires_at)
            self._store.move_to_end(key)
            while len(self._store) > self._max_size:
                self._store.popitem(last=False)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix. Returns the number removed."""
        with self._lock:
            doomed = [k for k in self._store if k.startswith(prefix)]
            for k in doomed:
                del self._store[k]
        if doomed:
            logger.debug("cache invalidated", extra={"extra_fields": {"prefix": prefix, "count": len(doomed)}})
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": (self._hits / lookups * 100) if lookups else 0.0,
            }
