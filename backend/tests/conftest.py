"""
Shared fixtures: in-memory collaborators and small builders for trip snapshots.
"""
from typing import Dict, Optional, Sequence

import pytest

from tripplanner.core.itinerary.cache import InMemoryItineraryCache
from tripplanner.core.itinerary.preferences import PreferenceAggregator
from tripplanner.core.itinerary.service import ItineraryService
from tripplanner.core.itinerary.types import (
    Coordinate, Member, MemberStatus, PlaceSnapshot, TripPlace, TripSnapshot
)
from tripplanner.core.settings import Settings

WARSAW = Coordinate(52.2297, 21.0122)


def near(origin: Coordinate = WARSAW, north_m: float = 0.0) -> Coordinate:
    """Point roughly ``north_m`` metres north of ``origin``"""
    return Coordinate(origin.latitude + north_m / 111_320.0, origin.longitude)


def make_place(
    place_id: int,
    category: str = "museum",
    rating: Optional[float] = 4.0,
    north_m: Optional[float] = 500.0,
    name: Optional[str] = None,
    opening_hours: Optional[dict] = None,
    is_fixed: bool = False,
    day: Optional[int] = None,
) -> TripPlace:
    return TripPlace(
        place=PlaceSnapshot(
            id=place_id,
            name=name or f"{category.title()} {place_id}",
            category_slug=category,
            rating=rating,
            location=near(north_m=north_m) if north_m is not None else None,
            opening_hours=opening_hours,
        ),
        is_fixed=is_fixed,
        day=day,
        order_index=place_id,
    )


def make_trip(
    places: Sequence[TripPlace] = (),
    start: Optional[Coordinate] = WARSAW,
    owner_id: int = 1,
    members: Sequence[Member] = (),
    trip_id: int = 10,
) -> TripSnapshot:
    return TripSnapshot(
        id=trip_id,
        owner_id=owner_id,
        start=start,
        places=tuple(places),
        members=tuple(members),
    )


class FakeTripRepository:
    def __init__(self, *trips: TripSnapshot):
        self.trips = {t.id: t for t in trips}
        self.calls = 0

    async def get_trip(self, trip_id: int) -> Optional[TripSnapshot]:
        self.calls += 1
        return self.trips.get(trip_id)


class FakePreferenceStore:
    def __init__(self, preferences: Optional[Dict[int, Dict[str, int]]] = None):
        self.preferences = preferences or {}
        self.requested = []

    async def get_preferences(self, user_ids: Sequence[int]) -> Dict[int, Dict[str, int]]:
        self.requested.append(list(user_ids))
        return {uid: dict(self.preferences[uid]) for uid in user_ids if uid in self.preferences}


class FakeVoteStore:
    def __init__(self, votes: Optional[Dict[int, float]] = None):
        self.votes = votes or {}

    async def get_average_votes(self, trip_id: int) -> Dict[int, float]:
        return dict(self.votes)


def build_service(
    trip: TripSnapshot,
    preferences: Optional[Dict[int, Dict[str, int]]] = None,
    votes: Optional[Dict[int, float]] = None,
    cache: Optional[InMemoryItineraryCache] = None,
) -> ItineraryService:
    return ItineraryService(
        trips=FakeTripRepository(trip),
        aggregator=PreferenceAggregator(FakePreferenceStore(preferences)),
        votes=FakeVoteStore(votes),
        cache=cache if cache is not None else InMemoryItineraryCache(),
        settings=Settings(),
    )


@pytest.fixture
def accepted_member():
    return Member(user_id=2, status=MemberStatus.ACCEPTED)


@pytest.fixture
def sample_trip():
    """Restaurant / museum / park trip used across tests"""
    return make_trip(
        places=[
            make_place(1, "museum", rating=4.7, name="National Museum"),
            make_place(2, "park", rating=4.2, name="Lazienki Park"),
            make_place(3, "restaurant", rating=4.5, name="Pierogarnia"),
        ],
    )
