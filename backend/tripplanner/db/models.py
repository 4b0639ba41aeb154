from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Index, CheckConstraint, UniqueConstraint, JSON
from pydantic import field_validator

from tripplanner.core.itinerary.types import MemberStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditModel(SQLModel):
    """Base model with common audit fields"""
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
        sa_column_kwargs={"onupdate": utcnow},
    )


class User(AuditModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(index=True, unique=True, max_length=255)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not v or '@' not in v:
            raise ValueError('Invalid email format')
        return v.strip().lower()


class Category(AuditModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(index=True, unique=True, max_length=100)
    name: Optional[str] = Field(default=None, max_length=255)
    include_in_preferences: bool = Field(
        default=True,
        description="Whether users can rate this category",
    )


class UserPreference(AuditModel, table=True):
    __tablename__ = "user_preferences"

    __table_args__ = (
        UniqueConstraint('user_id', 'category_id', name='uq_user_preferences_user_category'),
        CheckConstraint('score >= 0 AND score <= 2', name='check_preference_score_range'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    category_id: int = Field(foreign_key="categories.id", nullable=False)
    score: int = Field(default=0, description="0 = neutral/dislike, 1 = like, 2 = love")


class Trip(AuditModel, table=True):
    __tablename__ = "trips"

    __table_args__ = (
        Index('idx_trips_owner_id', 'owner_id'),
        CheckConstraint('start_latitude IS NULL OR start_latitude BETWEEN -90 AND 90', name='check_trip_latitude'),
        CheckConstraint('start_longitude IS NULL OR start_longitude BETWEEN -180 AND 180', name='check_trip_longitude'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    owner_id: int = Field(foreign_key="users.id", nullable=False)
    start_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    end_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    start_latitude: Optional[float] = Field(default=None)
    start_longitude: Optional[float] = Field(default=None)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError('Trip name cannot be empty')
        return v.strip()


class TripUser(AuditModel, table=True):
    """Trip membership; the owner normally has no row here"""
    __tablename__ = "trip_user"

    __table_args__ = (
        UniqueConstraint('trip_id', 'user_id', name='uq_trip_user'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    trip_id: int = Field(foreign_key="trips.id", nullable=False)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    role: str = Field(default="member", max_length=50)
    status: MemberStatus = Field(default=MemberStatus.PENDING)


class Place(AuditModel, table=True):
    __tablename__ = "places"

    __table_args__ = (
        Index('idx_places_category_slug', 'category_slug'),
        CheckConstraint('rating IS NULL OR (rating >= 0 AND rating <= 5)', name='check_place_rating'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    category_slug: str = Field(default="unknown", max_length=100)
    rating: Optional[float] = Field(default=None, ge=0, le=5, description="Average rating (0-5)")
    latitude: Optional[float] = Field(default=None)
    longitude: Optional[float] = Field(default=None)
    opening_hours: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Opening hours metadata, e.g. {'open_now': true}",
    )


class TripPlaceLink(AuditModel, table=True):
    __tablename__ = "trip_place"

    __table_args__ = (
        UniqueConstraint('trip_id', 'place_id', name='uq_trip_place'),
        CheckConstraint('day IS NULL OR day >= 1', name='check_trip_place_day'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    trip_id: int = Field(foreign_key="trips.id", nullable=False)
    place_id: int = Field(foreign_key="places.id", nullable=False)
    order_index: Optional[int] = Field(default=None)
    status: str = Field(default="planned", max_length=20)
    note: Optional[str] = Field(default=None, max_length=255)
    is_fixed: bool = Field(default=False)
    day: Optional[int] = Field(default=None)
    added_by: Optional[int] = Field(default=None, foreign_key="users.id")


class TripPlaceVote(AuditModel, table=True):
    __tablename__ = "trip_place_votes"

    __table_args__ = (
        UniqueConstraint('trip_id', 'place_id', 'user_id', name='uq_trip_place_vote'),
        Index('idx_trip_place_votes_trip_place', 'trip_id', 'place_id'),
        CheckConstraint('score >= 1 AND score <= 5', name='check_vote_score_range'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    trip_id: int = Field(foreign_key="trips.id", nullable=False)
    place_id: int = Field(foreign_key="places.id", nullable=False)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    score: int = Field(description="1-5")


class TripItinerary(AuditModel, table=True):
    """Cached multi-day itinerary, one row per (trip, day_count)"""
    __tablename__ = "trip_itineraries"

    __table_args__ = (
        UniqueConstraint('trip_id', 'day_count', name='uq_trip_itineraries_trip_days'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    trip_id: int = Field(foreign_key="trips.id", nullable=False)
    day_count: int = Field(default=1)
    radius_meters: Optional[int] = Field(default=None)
    schedule: List[Dict[str, Any]] = Field(sa_column=Column(JSON, nullable=False))
    cache_info: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    generated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False)
