"""Itinerary generation engine: preference aggregation, scoring, day allocation and caching."""

from tripplanner.core.itinerary.types import (
    Coordinate,
    Itinerary,
    ItineraryDay,
    ItineraryPlace,
    Member,
    MemberStatus,
    Owner,
    PlaceSnapshot,
    TripPlace,
    TripSnapshot,
)
from tripplanner.core.itinerary.service import ItineraryService

__all__ = [
    "Coordinate",
    "Itinerary",
    "ItineraryDay",
    "ItineraryPlace",
    "ItineraryService",
    "Member",
    "MemberStatus",
    "Owner",
    "PlaceSnapshot",
    "TripPlace",
    "TripSnapshot",
]
