"""
Tests for the place scoring engine.
"""
import pytest

from tripplanner.core.itinerary.scoring import (
    MAX_DISTANCE_PENALTY,
    NEUTRAL_DEFAULT,
    ScoringEngine,
    distance_meters,
    distance_penalty,
)

from conftest import WARSAW, make_place


@pytest.fixture
def engine():
    return ScoringEngine()


class TestPreferenceWeight:
    def test_uses_group_average_when_present(self, engine):
        assert engine.preference_weight("museum", {"museum": 1.5}) == 1.5

    def test_missing_category_gets_neutral_default(self, engine):
        assert engine.preference_weight("unknown", {"museum": 1.5}) == NEUTRAL_DEFAULT

    def test_neutral_default_is_configurable(self):
        assert ScoringEngine(neutral_weight=0.5).preference_weight("bar", {"museum": 2}) == 0.5


class TestScore:
    def test_preference_mode_formula(self, engine):
        place = make_place(1, "restaurant", rating=4.5, north_m=None).place
        # 2 * 2.0 + 0.5 * 4.5, no distance without a location
        assert engine.score(place, {"restaurant": 2.0}, WARSAW) == 6.25

    def test_fallback_mode_uses_rating_only(self, engine):
        near_place = make_place(1, rating=4.0, north_m=100, opening_hours={"open_now": False}).place
        far_place = make_place(2, rating=4.0, north_m=15000).place
        assert engine.score(near_place, {}, WARSAW) == 2.0
        assert engine.score(far_place, {}, WARSAW) == 2.0
        assert engine.score(make_place(3, rating=None).place, {}, WARSAW) == 0.0

    def test_farther_place_scores_lower(self, engine):
        prefs = {"museum": 1.0}
        close = make_place(1, rating=4.0, north_m=200).place
        far = make_place(2, rating=4.0, north_m=1500).place
        assert engine.score(close, prefs, WARSAW) > engine.score(far, prefs, WARSAW)

    def test_distance_penalty_is_capped(self, engine):
        prefs = {"museum": 1.0}
        five_km = make_place(1, rating=4.0, north_m=5000).place
        fifty_km = make_place(2, rating=4.0, north_m=50000).place
        assert engine.score(five_km, prefs, WARSAW) == engine.score(fifty_km, prefs, WARSAW)
        assert distance_penalty(1_000_000) == MAX_DISTANCE_PENALTY
        assert distance_penalty(None) == 0.0

    def test_distance_does_not_override_preference(self, engine):
        prefs = {"food": 2.0, "museum": 1.0}
        loved_far = make_place(1, "food", rating=4.0, north_m=19000).place
        liked_here = make_place(2, "museum", rating=4.0, north_m=0).place
        assert engine.score(loved_far, prefs, WARSAW) > engine.score(liked_here, prefs, WARSAW)

    def test_open_now_boost(self, engine):
        prefs = {"museum": 1.0}
        open_place = make_place(1, north_m=None, opening_hours={"open_now": True}).place
        closed_place = make_place(2, north_m=None, opening_hours={"open_now": False}).place
        no_info = make_place(3, north_m=None, opening_hours={"weekday_text": []}).place
        assert engine.score(open_place, prefs, WARSAW) == 4.5
        assert engine.score(closed_place, prefs, WARSAW) == 3.5
        assert engine.score(no_info, prefs, WARSAW) == 4.0

    def test_average_vote_adds_to_score(self, engine):
        place = make_place(1, north_m=None).place
        assert engine.score(place, {"museum": 1.0}, WARSAW, avg_vote=4.5) == 8.5

    def test_no_origin_means_no_distance_penalty(self, engine):
        place = make_place(1, rating=4.0, north_m=3000).place
        assert engine.score(place, {"museum": 1.0}, None) == 4.0


class TestRank:
    def test_reports_distance_independently(self, engine):
        scored = engine.score_place(make_place(1, north_m=1000), {}, WARSAW)
        assert scored.distance_m == pytest.approx(1000, abs=5)
        assert scored.to_itinerary_place().distance_m == pytest.approx(1000, abs=5)
        assert distance_meters(WARSAW, None) is None

    def test_unknown_category_ranks_behind_preferred(self, engine):
        places = [
            make_place(1, "mystery", rating=4.0),
            make_place(2, "museum", rating=4.0),
        ]
        ranked = engine.rank(places, {"museum": 1.0}, WARSAW)
        assert [s.id for s in ranked] == [2, 1]

    def test_ties_break_on_rating_then_id(self, engine):
        prefs = {"a": 1.0, "b": 0.5}
        places = [
            make_place(7, "c", rating=3.0, north_m=None),
            make_place(3, "a", rating=3.0, north_m=None),   # 2.0 + 1.5
            make_place(5, "b", rating=5.0, north_m=None),   # 1.0 + 2.5
            make_place(4, "c", rating=3.0, north_m=None),
        ]
        ranked = engine.rank(places, prefs, WARSAW)
        assert [s.id for s in ranked] == [5, 3, 4, 7]

    def test_example_trip_order(self, engine, sample_trip):
        prefs = {"restaurant": 2.0, "museum": 1.0, "park": 0.0}
        ranked = engine.rank(sample_trip.places, prefs, WARSAW)
        assert [s.trip_place.place.category_slug for s in ranked] == ["restaurant", "museum", "park"]
