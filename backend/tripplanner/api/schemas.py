from typing import Dict
from pydantic import BaseModel, Field

from tripplanner.core.itinerary.types import Itinerary, ItineraryDay, ItineraryPlace
from tripplanner.core.settings import Settings

_settings = Settings()

# ===== ITINERARY SCHEMAS =====

class FullRouteRequest(BaseModel):
    days: int = Field(
        default=_settings.DEFAULT_ITINERARY_DAYS,
        ge=_settings.MIN_ITINERARY_DAYS,
        le=_settings.MAX_ITINERARY_DAYS,
        description="Number of days to plan",
    )
    radius: int = Field(
        default=_settings.DEFAULT_RADIUS_METERS,
        ge=_settings.MIN_RADIUS_METERS,
        le=_settings.MAX_RADIUS_METERS,
        description="Search radius around the origin, in metres",
    )
    reuse_cached: bool = Field(
        default=False,
        description="Serve a stored plan for the same days/radius instead of recomputing",
    )


class GroupPreferencesRead(BaseModel):
    trip_id: int
    group_preferences: Dict[str, float]


class ItineraryRead(Itinerary):
    pass


__all__ = [
    "FullRouteRequest",
    "GroupPreferencesRead",
    "ItineraryRead",
    "ItineraryDay",
    "ItineraryPlace",
]
