"""
Place scoring.

Preference mode (the group has at least one rated category)::

    score = 2.0 * preference + 1.0 * avg_vote + 0.5 * rating
            +/- 0.5 open-now boost - distance penalty

``preference`` is the group's average for the place's category, or the
neutral default when the category is missing from the map. The distance
penalty grows linearly at one point per 2 km and is capped at 1.0, so it
orders otherwise-equal places without overriding a preference gap.

Fallback mode (empty group map) scores ``0.5 * rating`` only, which ranks
places strictly by rating.

Scores are rounded to 2 decimals; ties break on rating (desc) then place id
(asc).
"""
from typing import Iterable, List, Mapping, NamedTuple, Optional

from geopy.distance import geodesic

from tripplanner.core.itinerary.preferences import GroupPreferenceMap, round_half_up
from tripplanner.core.itinerary.types import Coordinate, ItineraryPlace, PlaceSnapshot, TripPlace

NEUTRAL_DEFAULT = 0.0

PREFERENCE_WEIGHT = 2.0
VOTE_WEIGHT = 1.0
RATING_WEIGHT = 0.5
OPEN_NOW_BOOST = 0.5
DISTANCE_PENALTY_SCALE_M = 2000.0
MAX_DISTANCE_PENALTY = 1.0


class ScoredPlace(NamedTuple):
    trip_place: TripPlace
    score: float
    distance_m: Optional[float]

    @property
    def id(self) -> int:
        return self.trip_place.id

    @property
    def rating(self) -> float:
        return float(self.trip_place.place.rating or 0.0)

    @property
    def is_fixed(self) -> bool:
        return self.trip_place.is_fixed

    def to_itinerary_place(self) -> ItineraryPlace:
        place = self.trip_place.place
        return ItineraryPlace(
            id=place.id,
            name=place.name,
            category_slug=place.category_slug,
            score=self.score,
            distance_m=int(round(self.distance_m)) if self.distance_m is not None else None,
        )


def distance_meters(origin: Optional[Coordinate], location: Optional[Coordinate]) -> Optional[float]:
    if origin is None or location is None:
        return None
    return geodesic(
        (origin.latitude, origin.longitude),
        (location.latitude, location.longitude),
    ).meters


def distance_penalty(distance_m: Optional[float]) -> float:
    if not distance_m or distance_m <= 0:
        return 0.0
    return min(distance_m / DISTANCE_PENALTY_SCALE_M, MAX_DISTANCE_PENALTY)


def ranking_key(scored: ScoredPlace):
    return (-scored.score, -scored.rating, scored.id)


class ScoringEngine:
    def __init__(self, neutral_weight: float = NEUTRAL_DEFAULT):
        self.neutral_weight = neutral_weight

    def preference_weight(self, category_slug: str, group: GroupPreferenceMap) -> float:
        weight = group.get(category_slug)
        if weight is None:
            return self.neutral_weight
        return float(weight)

    def score(
        self,
        place: PlaceSnapshot,
        group: GroupPreferenceMap,
        origin: Optional[Coordinate],
        avg_vote: Optional[float] = None,
    ) -> float:
        return self._score(place, group, distance_meters(origin, place.location), avg_vote)

    def _score(
        self,
        place: PlaceSnapshot,
        group: GroupPreferenceMap,
        distance_m: Optional[float],
        avg_vote: Optional[float],
    ) -> float:
        rating = float(place.rating or 0.0)
        if not group:
            return round_half_up(rating * RATING_WEIGHT)

        open_boost = 0.0
        if place.open_now is not None:
            open_boost = OPEN_NOW_BOOST if place.open_now else -OPEN_NOW_BOOST

        raw = (
            self.preference_weight(place.category_slug, group) * PREFERENCE_WEIGHT
            + float(avg_vote or 0.0) * VOTE_WEIGHT
            + rating * RATING_WEIGHT
            + open_boost
            - distance_penalty(distance_m)
        )
        return round_half_up(raw)

    def score_place(
        self,
        trip_place: TripPlace,
        group: GroupPreferenceMap,
        origin: Optional[Coordinate],
        votes: Optional[Mapping[int, float]] = None,
    ) -> ScoredPlace:
        place = trip_place.place
        distance_m = distance_meters(origin, place.location)
        return ScoredPlace(
            trip_place=trip_place,
            score=self._score(place, group, distance_m, (votes or {}).get(place.id)),
            distance_m=distance_m,
        )

    def rank(
        self,
        trip_places: Iterable[TripPlace],
        group: GroupPreferenceMap,
        origin: Optional[Coordinate],
        votes: Optional[Mapping[int, float]] = None,
    ) -> List[ScoredPlace]:
        scored = [self.score_place(tp, group, origin, votes) for tp in trip_places]
        return sorted(scored, key=ranking_key)
