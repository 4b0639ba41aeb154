"""
Itinerary cache.

Multi-day plans are stored under ``(trip_id, day_count)``; a new plan for the
same key replaces the old one. The cache is advisory: it never decides
freshness, callers choose whether to reuse a stored plan or recompute.
"""
from datetime import datetime, timezone
from typing import Dict, NamedTuple, Optional, Protocol

from tripplanner.core.itinerary.types import Itinerary


class CacheKey(NamedTuple):
    trip_id: int
    day_count: int


class CachedItinerary(NamedTuple):
    itinerary: Itinerary
    radius_meters: Optional[int]
    cached_at: datetime


class ItineraryCache(Protocol):
    async def get(self, key: CacheKey) -> Optional[CachedItinerary]:
        ...

    async def put(self, key: CacheKey, itinerary: Itinerary, radius_meters: Optional[int] = None) -> None:
        ...


class InMemoryItineraryCache:
    """Process-local cache; last writer wins."""

    def __init__(self):
        self._entries: Dict[CacheKey, CachedItinerary] = {}

    async def get(self, key: CacheKey) -> Optional[CachedItinerary]:
        return self._entries.get(key)

    async def put(self, key: CacheKey, itinerary: Itinerary, radius_meters: Optional[int] = None) -> None:
        self._entries[key] = CachedItinerary(
            itinerary=itinerary.model_copy(deep=True),
            radius_meters=radius_meters,
            cached_at=datetime.now(timezone.utc),
        )

    def __len__(self) -> int:
        return len(self._entries)
