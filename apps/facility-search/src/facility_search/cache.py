from __future__ import annotations

import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from geo_engine.models import Coordinate

from facility_search.models import LocationReading, RankedFacility

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

SearchKey = tuple[float, float, int, str]
ReverseKey = tuple[float, float]

CURRENT_LOCATION_KEY = "current"


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float


class InMemoryTTLCache(Generic[K, V]):
    """Process-local map whose entries expire after ``ttl_seconds``; ``None`` disables expiry."""

    def __init__(self, ttl_seconds: float | None, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: dict[K, CacheEntry[V]] = {}

    async def get(self, key: K) -> V | None:
        entry = self._items.get(key)
        if entry is None:
            return None
        if self._ttl_seconds is not None and self._clock() - entry.stored_at >= self._ttl_seconds:
            return None
        return entry.value

    async def set(self, key: K, value: V) -> None:
        self._items[key] = CacheEntry(value=value, stored_at=self._clock())

    async def clear(self) -> int:
        removed = len(self._items)
        self._items.clear()
        return removed

    def __len__(self) -> int:
        return len(self._items)


def search_cache_key(center: Coordinate, radius_meters: int, kind: str | None) -> SearchKey:
    lat, lng = center.rounded(2)
    return lat, lng, radius_meters, kind or "all"


def reverse_cache_key(point: Coordinate) -> ReverseKey:
    return point.rounded(5)


@dataclass
class CacheStore:
    search_ttl_seconds: float = 30 * 60
    location_ttl_seconds: float = 2 * 60
    clock: Callable[[], float] = time.monotonic
    search: InMemoryTTLCache[SearchKey, list[RankedFacility]] = field(init=False)
    reverse: InMemoryTTLCache[ReverseKey, str] = field(init=False)
    location: InMemoryTTLCache[str, LocationReading] = field(init=False)

    def __post_init__(self) -> None:
        self.search = InMemoryTTLCache(self.search_ttl_seconds, clock=self.clock)
        # Addresses are kept for the process lifetime.
        self.reverse = InMemoryTTLCache(None, clock=self.clock)
        self.location = InMemoryTTLCache(self.location_ttl_seconds, clock=self.clock)

    async def clear(self) -> None:
        await self.search.clear()
        await self.reverse.clear()
        await self.location.clear()
