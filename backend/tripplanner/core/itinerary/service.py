"""
Itinerary orchestration.

``ItineraryService`` fetches one snapshot of the trip, checks the
preconditions, then runs aggregation -> scoring -> allocation. Multi-day plans
are written to the itinerary cache. Domain errors (no places, no origin)
surface as ``DomainError`` subclasses; repository failures propagate as-is.
"""
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

import structlog

from tripplanner.core.errors import RouteParameterError, TripNotFound
from tripplanner.core.itinerary.allocator import DayAllocator, Origin, require_places, resolve_origin
from tripplanner.core.itinerary.cache import CacheKey, CachedItinerary, ItineraryCache
from tripplanner.core.itinerary.preferences import GroupPreferenceMap, PreferenceAggregator
from tripplanner.core.itinerary.scoring import ScoringEngine
from tripplanner.core.itinerary.types import Itinerary, TripSnapshot
from tripplanner.core.settings import Settings

logger = structlog.get_logger(__name__)

ALGORITHM = "v3-trip-places"
SOURCE_FRESH = "trip_places_only"
SOURCE_CACHE = "itinerary_cache"
MODE_SINGLE = "simple_one_day"
MODE_MULTI = "multi_day"


class TripRepository(Protocol):
    async def get_trip(self, trip_id: int) -> Optional[TripSnapshot]:
        ...


class VoteStore(Protocol):
    async def get_average_votes(self, trip_id: int) -> Dict[int, float]:
        ...


@asynccontextmanager
async def performance_timer(operation: str, **context):
    """Log how long an operation took"""
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info("operation_timed", operation=operation, duration_ms=round(duration_ms, 2), **context)


def validate_route_parameters(days: int, radius_meters: int, settings: Optional[Settings] = None) -> None:
    settings = settings or Settings()
    errors = {}
    if not settings.MIN_ITINERARY_DAYS <= days <= settings.MAX_ITINERARY_DAYS:
        errors["days"] = (
            f"must be between {settings.MIN_ITINERARY_DAYS} and {settings.MAX_ITINERARY_DAYS}"
        )
    if not settings.MIN_RADIUS_METERS <= radius_meters <= settings.MAX_RADIUS_METERS:
        errors["radius"] = (
            f"must be between {settings.MIN_RADIUS_METERS} and {settings.MAX_RADIUS_METERS}"
        )
    if errors:
        raise RouteParameterError(errors)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ItineraryService:
    def __init__(
        self,
        trips: TripRepository,
        aggregator: PreferenceAggregator,
        votes: VoteStore,
        cache: ItineraryCache,
        scoring: Optional[ScoringEngine] = None,
        allocator: Optional[DayAllocator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.trips = trips
        self.aggregator = aggregator
        self.votes = votes
        self.cache = cache
        self.scoring = scoring or ScoringEngine(self.settings.NEUTRAL_PREFERENCE_WEIGHT)
        self.allocator = allocator or DayAllocator()

    async def _load_trip(self, trip_id: int) -> TripSnapshot:
        trip = await self.trips.get_trip(trip_id)
        if trip is None:
            raise TripNotFound()
        return trip

    async def aggregate_preferences(self, trip_id: int) -> GroupPreferenceMap:
        trip = await self._load_trip(trip_id)
        return await self.aggregator.get_group_preferences(trip)

    def _cache_info(self, mode: str, origin: Origin, radius_meters: Optional[int] = None) -> Dict:
        return {
            "cached": False,
            "mode": mode,
            "source": SOURCE_FRESH,
            "algorithm": ALGORITHM,
            "origin": origin.describe(),
            "radius_meters": radius_meters,
            "generated_at": _now_iso(),
            "cached_at": None,
        }

    async def generate(self, trip_id: int) -> Itinerary:
        """Single-day plan with every attached place, best first."""
        async with performance_timer("itinerary_generation", trip_id=trip_id, mode=MODE_SINGLE):
            trip = await self._load_trip(trip_id)
            require_places(trip)
            origin = resolve_origin(trip)

            prefs = await self.aggregator.get_group_preferences(trip)
            votes = await self.votes.get_average_votes(trip.id)

            ranked = self.scoring.rank(trip.places, prefs, origin.coordinate, votes)
            schedule = self.allocator.single_day(ranked)

            itinerary = Itinerary(
                trip_id=trip.id,
                day_count=1,
                schedule=schedule,
                cache_info=self._cache_info(MODE_SINGLE, origin),
            )

        logger.info(
            "trip.itinerary_generated",
            trip_id=trip.id,
            mode=MODE_SINGLE,
            places_total=len(trip.places),
            places_selected=len(itinerary.place_ids),
            preferences_count=len(prefs),
            votes_count=len(votes),
            fallback_ranking=not prefs,
            origin=origin.describe(),
            algorithm=ALGORITHM,
        )
        return itinerary

    async def generate_full_route(
        self,
        trip_id: int,
        days: int,
        radius_meters: int,
        reuse_cached: bool = False,
    ) -> Itinerary:
        """Multi-day plan within ``radius_meters`` of the origin; stored in the cache."""
        validate_route_parameters(days, radius_meters, self.settings)
        key = CacheKey(trip_id, days)

        if reuse_cached:
            cached = await self.cache.get(key)
            if cached is not None and cached.radius_meters == radius_meters:
                logger.info("itinerary_cache_hit", trip_id=trip_id, day_count=days)
                return self._from_cache(cached)

        async with performance_timer("itinerary_full_generation", trip_id=trip_id, mode=MODE_MULTI):
            trip = await self._load_trip(trip_id)
            require_places(trip)
            origin = resolve_origin(trip)

            prefs = await self.aggregator.get_group_preferences(trip)
            votes = await self.votes.get_average_votes(trip.id)

            ranked = self.scoring.rank(trip.places, prefs, origin.coordinate, votes)
            schedule = self.allocator.multi_day(ranked, days, radius_meters)

            itinerary = Itinerary(
                trip_id=trip.id,
                day_count=days,
                schedule=schedule,
                cache_info=self._cache_info(MODE_MULTI, origin, radius_meters),
            )
            if not itinerary.place_ids:
                logger.warning(
                    "itinerary_empty_after_radius_filter",
                    trip_id=trip.id,
                    radius_meters=radius_meters,
                )

            await self.cache.put(key, itinerary, radius_meters)

        logger.info(
            "trip.itinerary_full_generated",
            trip_id=trip.id,
            mode=MODE_MULTI,
            days=days,
            radius=radius_meters,
            places_total=len(trip.places),
            places_selected=len(itinerary.place_ids),
            preferences_count=len(prefs),
            votes_count=len(votes),
            fallback_ranking=not prefs,
            origin=origin.describe(),
            algorithm=ALGORITHM,
            cached=True,
        )
        return itinerary

    async def get_cached_itinerary(self, trip_id: int, day_count: int) -> Optional[Itinerary]:
        cached = await self.cache.get(CacheKey(trip_id, day_count))
        if cached is None:
            return None
        return self._from_cache(cached)

    @staticmethod
    def _from_cache(cached: CachedItinerary) -> Itinerary:
        itinerary = cached.itinerary.model_copy(deep=True)
        itinerary.cache_info = {
            **itinerary.cache_info,
            "cached": True,
            "source": SOURCE_CACHE,
            "algorithm": itinerary.cache_info.get("algorithm", ALGORITHM),
            "radius_meters": cached.radius_meters,
            "cached_at": cached.cached_at.isoformat(),
        }
        return itinerary
