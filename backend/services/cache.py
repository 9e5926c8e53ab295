"""TTL caches for upstream reads and outward query responses.

Both caches are plain in-process dicts. A cache is created once per process
(see ``create_app``) and handed to the clients and routes that use it, so
tests can pass their own instance with a fake clock.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    """A cached payload and the time it was written."""

    key: str
    value: Any
    timestamp: float


def make_cache_key(*parts, **filters) -> str:
    """Canonical key for a request signature.

    Filters with a ``None`` value are dropped so that an omitted parameter
    and an explicit ``None`` share a slot.
    """
    cleaned = {k: v for k, v in filters.items() if v is not None}
    return json.dumps([list(parts), cleaned], sort_keys=True, default=str)


class TTLCache:
    """Keyed store whose entries are fresh for ``ttl_seconds`` after write.

    Expired entries are kept: ``get`` still returns them so callers can fall
    back to stale data, and ``is_fresh`` tells the two cases apart.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> CacheEntry:
        entry = CacheEntry(key=key, value=value, timestamp=self.clock())
        self._entries[key] = entry
        return entry

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.timestamp < self.ttl_seconds

    def age(self, entry: CacheEntry) -> float:
        return self.clock() - entry.timestamp

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)


class ResponseCache:
    """Memoizes outward query functions by route name and parameters."""

    def __init__(self, cache: Optional[TTLCache] = None):
        self.cache = cache or TTLCache()

    def get_or_compute(self, route: str, params: dict, compute: Callable[[], Any]) -> Any:
        """Return the fresh cached payload for ``route`` or compute and store it."""
        key = make_cache_key("response", route, **params)
        entry = self.cache.get(key)
        if entry is not None and self.cache.is_fresh(entry):
            return entry.value

        value = compute()
        self.cache.set(key, value)
        return value
