"""
Day allocation.

Turns a ranked candidate list into day buckets. Fixed places are never
dropped: they skip the radius filter and go to the day they were pinned to
(clamped into the trip length), or day 1 when no day was given. The remaining
candidates are split into contiguous score bands, one per day, so day 1 gets
the best-ranked tier.
"""
from typing import Dict, List, NamedTuple, Optional, Sequence

from tripplanner.core.errors import NoOriginPoint, NoPlacesAttached
from tripplanner.core.itinerary.scoring import ScoredPlace, ranking_key
from tripplanner.core.itinerary.types import Coordinate, ItineraryDay, TripSnapshot

LODGING_CATEGORY = "lodging"


class Origin(NamedTuple):
    coordinate: Coordinate
    source: str  # trip_start | fixed_lodging | fixed_any
    place_id: Optional[int] = None

    def describe(self) -> Dict[str, Optional[object]]:
        return {"source": self.source, "place_id": self.place_id}


def require_places(trip: TripSnapshot) -> None:
    if not trip.places:
        raise NoPlacesAttached()


def resolve_origin(trip: TripSnapshot) -> Origin:
    """Trip start, else a fixed lodging, else any fixed place with a coordinate."""
    if trip.start is not None:
        return Origin(trip.start, "trip_start")

    located = [tp for tp in trip.fixed_places if tp.place.location is not None]
    for tp in located:
        if tp.place.category_slug == LODGING_CATEGORY:
            return Origin(tp.place.location, "fixed_lodging", tp.id)
    if located:
        return Origin(located[0].place.location, "fixed_any", located[0].id)

    raise NoOriginPoint()


def within_radius(scored: ScoredPlace, radius_meters: float) -> bool:
    if scored.is_fixed:
        return True
    return scored.distance_m is not None and scored.distance_m <= radius_meters


def split_into_bands(items: Sequence[ScoredPlace], days: int) -> List[List[ScoredPlace]]:
    """Contiguous, nearly-equal slices; earlier slices take the remainder."""
    base, extra = divmod(len(items), days)
    bands = []
    start = 0
    for index in range(days):
        size = base + (1 if index < extra else 0)
        bands.append(list(items[start:start + size]))
        start += size
    return bands


def pinned_day(scored: ScoredPlace, days: int) -> int:
    day = scored.trip_place.day or 1
    return min(max(day, 1), days)


class DayAllocator:
    def single_day(self, ranked: Sequence[ScoredPlace]) -> List[ItineraryDay]:
        ordered = sorted(ranked, key=ranking_key)
        return [ItineraryDay(day=1, places=[s.to_itinerary_place() for s in ordered])]

    def multi_day(
        self,
        ranked: Sequence[ScoredPlace],
        days: int,
        radius_meters: float,
    ) -> List[ItineraryDay]:
        if days < 1:
            raise ValueError("days must be at least 1")

        candidates = sorted(
            (s for s in ranked if within_radius(s, radius_meters)),
            key=ranking_key,
        )
        fixed = [s for s in candidates if s.is_fixed]
        normal = [s for s in candidates if not s.is_fixed]

        buckets: Dict[int, List[ScoredPlace]] = {
            day: band for day, band in enumerate(split_into_bands(normal, days), start=1)
        }
        for scored in fixed:
            buckets[pinned_day(scored, days)].append(scored)

        return [
            ItineraryDay(
                day=day,
                places=[s.to_itinerary_place() for s in sorted(buckets[day], key=ranking_key)],
            )
            for day in range(1, days + 1)
        ]
