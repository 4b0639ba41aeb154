"""
Value types shared by the itinerary engine.

Trip data is fetched once per request and frozen into a ``TripSnapshot``;
scoring and allocation only ever read from it. The ``Itinerary`` family are
the pydantic result DTOs handed back to callers and stored in the cache.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, Field


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


class MemberStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


@dataclass(frozen=True)
class Owner:
    """Trip owner; a participant whether or not a membership row exists."""
    user_id: int


@dataclass(frozen=True)
class Member:
    user_id: int
    status: MemberStatus
    role: str = "member"


Participant = Union[Owner, Member]


@dataclass(frozen=True)
class PlaceSnapshot:
    id: int
    name: str
    category_slug: str = "unknown"
    rating: Optional[float] = None
    location: Optional[Coordinate] = None
    opening_hours: Optional[Dict[str, Any]] = None

    @property
    def open_now(self) -> Optional[bool]:
        if isinstance(self.opening_hours, dict) and "open_now" in self.opening_hours:
            return bool(self.opening_hours["open_now"])
        return None


@dataclass(frozen=True)
class TripPlace:
    """A place attached to a trip, with the attachment's pin and day."""
    place: PlaceSnapshot
    is_fixed: bool = False
    day: Optional[int] = None
    order_index: Optional[int] = None
    status: str = "planned"

    @property
    def id(self) -> int:
        return self.place.id


@dataclass(frozen=True)
class TripSnapshot:
    id: int
    owner_id: int
    start: Optional[Coordinate] = None
    places: Tuple[TripPlace, ...] = field(default_factory=tuple)
    members: Tuple[Member, ...] = field(default_factory=tuple)

    @property
    def participants(self) -> Tuple[Participant, ...]:
        return (Owner(self.owner_id),) + tuple(self.members)

    @property
    def fixed_places(self) -> List[TripPlace]:
        return [tp for tp in self.places if tp.is_fixed]


# ===== RESULT DTOs =====

class ItineraryPlace(BaseModel):
    id: int
    name: str
    category_slug: str
    score: float
    distance_m: Optional[int] = Field(default=None, description="Distance from the origin in metres")


class ItineraryDay(BaseModel):
    day: int = Field(..., ge=1)
    places: List[ItineraryPlace] = Field(default_factory=list)


class Itinerary(BaseModel):
    trip_id: int
    day_count: int = Field(..., ge=1)
    schedule: List[ItineraryDay] = Field(default_factory=list)
    cache_info: Dict[str, Any] = Field(default_factory=dict)

    @property
    def place_ids(self) -> List[int]:
        return [p.id for d in self.schedule for p in d.places]
