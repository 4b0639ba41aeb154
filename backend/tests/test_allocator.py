"""
Tests for origin resolution and day allocation.
"""
import pytest

from tripplanner.core.errors import NoOriginPoint, NoPlacesAttached
from tripplanner.core.itinerary.allocator import (
    DayAllocator,
    require_places,
    resolve_origin,
    split_into_bands,
)
from tripplanner.core.itinerary.scoring import ScoringEngine

from conftest import WARSAW, make_place, make_trip, near


def rank(places, prefs=None):
    return ScoringEngine().rank(places, prefs or {}, WARSAW)


def day_ids(days):
    return [[p.id for p in d.places] for d in days]


class TestPreconditions:
    def test_no_places(self):
        with pytest.raises(NoPlacesAttached, match="No places added for this trip."):
            require_places(make_trip(places=[]))

    def test_trip_start_is_preferred_origin(self):
        trip = make_trip(places=[make_place(1, "lodging", is_fixed=True)], start=WARSAW)
        origin = resolve_origin(trip)
        assert origin.coordinate == WARSAW
        assert origin.describe() == {"source": "trip_start", "place_id": None}

    def test_fixed_lodging_beats_other_fixed_places(self):
        trip = make_trip(
            start=None,
            places=[
                make_place(1, "museum", is_fixed=True, north_m=100),
                make_place(2, "lodging", is_fixed=True, north_m=300),
            ],
        )
        origin = resolve_origin(trip)
        assert origin.source == "fixed_lodging"
        assert origin.place_id == 2
        assert origin.coordinate == near(north_m=300)

    def test_any_fixed_place_with_coordinate(self):
        trip = make_trip(
            start=None,
            places=[
                make_place(1, "museum", is_fixed=True, north_m=None),
                make_place(2, "park", is_fixed=True, north_m=800),
                make_place(3, "food", north_m=50),
            ],
        )
        origin = resolve_origin(trip)
        assert (origin.source, origin.place_id) == ("fixed_any", 2)

    def test_no_origin(self):
        trip = make_trip(
            start=None,
            places=[make_place(1), make_place(2, is_fixed=True, north_m=None)],
        )
        with pytest.raises(NoOriginPoint, match="Trip has no origin point"):
            resolve_origin(trip)


class TestSplitIntoBands:
    def test_earlier_bands_take_the_remainder(self):
        ranked = rank([make_place(i) for i in range(1, 8)])
        sizes = [len(b) for b in split_into_bands(ranked, 3)]
        assert sizes == [3, 2, 2]

    def test_more_days_than_places(self):
        ranked = rank([make_place(1)])
        assert [len(b) for b in split_into_bands(ranked, 3)] == [1, 0, 0]


class TestSingleDay:
    def test_all_places_in_score_order(self):
        places = [
            make_place(1, rating=3.0),
            make_place(2, rating=4.9),
            make_place(3, rating=4.1, is_fixed=True),
        ]
        days = DayAllocator().single_day(rank(places))
        assert len(days) == 1
        assert days[0].day == 1
        assert day_ids(days) == [[2, 3, 1]]


class TestMultiDay:
    def test_contiguous_score_bands(self):
        places = [make_place(i, rating=5.0 - i * 0.25) for i in range(1, 7)]
        days = DayAllocator().multi_day(rank(places), days=3, radius_meters=2000)
        assert day_ids(days) == [[1, 2], [3, 4], [5, 6]]

    def test_always_returns_requested_day_count(self):
        days = DayAllocator().multi_day(rank([make_place(1)]), days=3, radius_meters=2000)
        assert [d.day for d in days] == [1, 2, 3]
        assert day_ids(days) == [[1], [], []]

    def test_radius_excludes_far_places_but_keeps_fixed(self):
        places = [
            make_place(1, north_m=300),
            make_place(2, north_m=5000),
            make_place(3, north_m=9000, is_fixed=True),
            make_place(4, north_m=None),
        ]
        days = DayAllocator().multi_day(rank(places), days=1, radius_meters=1000)
        assert sorted(day_ids(days)[0]) == [1, 3]

    def test_fixed_place_goes_to_pinned_day(self):
        places = [
            make_place(1, rating=5.0),
            make_place(2, rating=4.5),
            make_place(3, rating=1.0, is_fixed=True, day=2),
            make_place(4, rating=0.5, is_fixed=True),
        ]
        days = DayAllocator().multi_day(rank(places), days=2, radius_meters=2000)
        assert day_ids(days) == [[1, 4], [2, 3]]

    def test_pinned_day_beyond_trip_length_is_clamped(self):
        places = [make_place(1), make_place(2, is_fixed=True, day=9)]
        days = DayAllocator().multi_day(rank(places), days=3, radius_meters=2000)
        assert 2 in day_ids(days)[2]

    def test_every_fixed_place_is_scheduled(self):
        places = [make_place(i, rating=5.0) for i in range(1, 6)]
        places += [make_place(i, rating=0.0, north_m=15000, is_fixed=True, day=i - 4) for i in range(6, 9)]
        days = DayAllocator().multi_day(rank(places), days=2, radius_meters=100)
        scheduled = {pid for ids in day_ids(days) for pid in ids}
        assert {6, 7, 8} <= scheduled

    def test_rejects_zero_days(self):
        with pytest.raises(ValueError):
            DayAllocator().multi_day([], days=0, radius_meters=1000)
