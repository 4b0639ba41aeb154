"""
Group preference aggregation.

Each user rates categories 0 (neutral/dislike), 1 (like) or 2 (love). A trip's
group preference map is the per-category average over its eligible
participants: the owner plus every member whose invitation was accepted.
A participant who never rated a category is left out of that category's
average instead of counting as zero.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Protocol, Sequence

import structlog

from tripplanner.core.itinerary.types import Member, MemberStatus, Owner, Participant, TripSnapshot

logger = structlog.get_logger(__name__)

MIN_PREFERENCE_SCORE = 0
MAX_PREFERENCE_SCORE = 2

GroupPreferenceMap = Dict[str, float]


class PreferenceStore(Protocol):
    async def get_preferences(self, user_ids: Sequence[int]) -> Dict[int, Dict[str, int]]:
        """Return ``{user_id: {category_slug: score}}`` for the given users."""
        ...


def clamp_preference_score(score) -> int:
    """Round a raw score half-up and clamp it into [0, 2].

    Out-of-range input is not an error; anything that is not a finite number
    raises ``ValueError``.
    """
    try:
        value = Decimal(str(score).strip())
    except InvalidOperation:
        raise ValueError(f"Preference score must be a number, got {score!r}") from None
    if not value.is_finite():
        raise ValueError(f"Preference score must be a number, got {score!r}")
    value = max(Decimal(MIN_PREFERENCE_SCORE), min(Decimal(MAX_PREFERENCE_SCORE), value))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def is_eligible(participant: Participant) -> bool:
    if isinstance(participant, Owner):
        return True
    if isinstance(participant, Member):
        return participant.status == MemberStatus.ACCEPTED
    return False


def eligible_participants(participants: Iterable[Participant]) -> List[int]:
    """User ids of eligible participants, first occurrence order, no duplicates."""
    seen: Dict[int, None] = {}
    for participant in participants:
        if is_eligible(participant) and participant.user_id not in seen:
            seen[participant.user_id] = None
    return list(seen)


class PreferenceAggregator:
    def __init__(self, store: PreferenceStore):
        self.store = store

    @staticmethod
    def aggregate(
        user_ids: Sequence[int],
        preferences: Mapping[int, Mapping[str, int]],
    ) -> GroupPreferenceMap:
        totals: Dict[str, int] = {}
        counts: Dict[str, int] = {}
        for user_id in user_ids:
            for slug, score in (preferences.get(user_id) or {}).items():
                totals[slug] = totals.get(slug, 0) + clamp_preference_score(score)
                counts[slug] = counts.get(slug, 0) + 1

        return {
            slug: round_half_up(totals[slug] / counts[slug])
            for slug in sorted(totals)
        }

    async def get_group_preferences(self, trip: TripSnapshot) -> GroupPreferenceMap:
        user_ids = eligible_participants(trip.participants)
        if not user_ids:
            return {}

        preferences = await self.store.get_preferences(user_ids)
        group = self.aggregate(user_ids, preferences)

        logger.debug(
            "group_preferences_aggregated",
            trip_id=trip.id,
            participants=len(user_ids),
            categories=len(group),
        )
        return group
