"""
SQL-backed collaborators of the itinerary engine.

Each repository wraps one ``AsyncSession``. Reads build immutable snapshots
once; failures are logged and re-raised so the caller sees the underlying
infrastructure error.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tripplanner.core.errors import DuplicateAttachment
from tripplanner.core.itinerary.cache import CacheKey, CachedItinerary
from tripplanner.core.itinerary.preferences import clamp_preference_score
from tripplanner.core.itinerary.types import (
    Coordinate, Itinerary, Member, PlaceSnapshot, TripPlace, TripSnapshot
)
from tripplanner.db.models import (
    Category, Place, Trip, TripItinerary, TripPlaceLink, TripPlaceVote, TripUser, UserPreference, utcnow
)

logger = logging.getLogger(__name__)


def _coordinate(lat: Optional[float], lon: Optional[float]) -> Optional[Coordinate]:
    if lat is None or lon is None:
        return None
    return Coordinate(float(lat), float(lon))


# ===== TRIPS =====

class SqlTripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_trip(self, trip_id: int) -> Optional[TripSnapshot]:
        """Load trip, members and attached places as one snapshot"""
        try:
            trip = await self.session.get(Trip, trip_id)
            if trip is None:
                return None

            members_result = await self.session.execute(
                select(TripUser).where(TripUser.trip_id == trip_id).order_by(TripUser.id)
            )
            members = tuple(
                Member(user_id=row.user_id, status=row.status, role=row.role)
                for row in members_result.scalars().all()
            )

            places_result = await self.session.execute(
                select(TripPlaceLink, Place)
                .join(Place, Place.id == TripPlaceLink.place_id)
                .where(TripPlaceLink.trip_id == trip_id)
                .order_by(
                    TripPlaceLink.order_index.is_(None),
                    TripPlaceLink.order_index,
                    TripPlaceLink.id,
                )
            )
            places = tuple(
                TripPlace(
                    place=PlaceSnapshot(
                        id=place.id,
                        name=place.name,
                        category_slug=place.category_slug or "unknown",
                        rating=place.rating,
                        location=_coordinate(place.latitude, place.longitude),
                        opening_hours=place.opening_hours,
                    ),
                    is_fixed=bool(link.is_fixed),
                    day=link.day,
                    order_index=link.order_index,
                    status=link.status,
                )
                for link, place in places_result.all()
            )

            return TripSnapshot(
                id=trip.id,
                owner_id=trip.owner_id,
                start=_coordinate(trip.start_latitude, trip.start_longitude),
                places=places,
                members=members,
            )
        except Exception as e:
            logger.error(f"Error loading trip {trip_id}: {e}")
            raise

    async def _is_attached(self, trip_id: int, place_id: int) -> bool:
        existing = await self.session.scalar(
            select(TripPlaceLink.id).where(
                TripPlaceLink.trip_id == trip_id,
                TripPlaceLink.place_id == place_id,
            )
        )
        return existing is not None

    async def attach_place(
        self,
        trip_id: int,
        place_id: int,
        is_fixed: bool = False,
        day: Optional[int] = None,
        order_index: Optional[int] = None,
        status: str = "planned",
        note: Optional[str] = None,
        added_by: Optional[int] = None,
    ) -> TripPlaceLink:
        """Attach a place to a trip; a second attach of the same place is rejected"""
        if await self._is_attached(trip_id, place_id):
            raise DuplicateAttachment()

        try:
            link = TripPlaceLink(
                trip_id=trip_id,
                place_id=place_id,
                is_fixed=is_fixed,
                day=day,
                order_index=order_index,
                status=status,
                note=note,
                added_by=added_by,
            )
            self.session.add(link)
            await self.session.commit()
            await self.session.refresh(link)
            logger.info(f"Attached place {place_id} to trip {trip_id}")
            return link
        except IntegrityError as e:
            # a concurrent attach of the same place won the unique constraint
            await self.session.rollback()
            if await self._is_attached(trip_id, place_id):
                logger.info(f"Place {place_id} was attached to trip {trip_id} concurrently")
                raise DuplicateAttachment() from e
            logger.error(f"Error attaching place {place_id} to trip {trip_id}: {e}")
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error attaching place {place_id} to trip {trip_id}: {e}")
            raise


# ===== PREFERENCES =====

class SqlPreferenceStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_preferences(self, user_ids: Sequence[int]) -> Dict[int, Dict[str, int]]:
        """Scores per user for categories open to preferences"""
        if not user_ids:
            return {}
        try:
            result = await self.session.execute(
                select(UserPreference.user_id, Category.slug, UserPreference.score)
                .join(Category, Category.id == UserPreference.category_id)
                .where(UserPreference.user_id.in_(list(user_ids)))
                .where(Category.include_in_preferences.is_(True))
                .order_by(UserPreference.user_id, Category.slug)
            )
            prefs: Dict[int, Dict[str, int]] = {}
            for user_id, slug, score in result.all():
                prefs.setdefault(user_id, {})[slug] = int(score)
            return prefs
        except Exception as e:
            logger.error(f"Error getting preferences for users {list(user_ids)}: {e}")
            raise

    async def set_preferences(
        self,
        user_id: int,
        preferences: Mapping[str, int],
    ) -> Tuple[Dict[str, int], List[str]]:
        """Upsert clamped scores; returns (saved, ignored_slugs)"""
        cleaned: Dict[str, int] = {}
        invalid: List[str] = []
        for slug, score in preferences.items():
            slug = str(slug).strip()
            if not slug:
                continue
            try:
                cleaned[slug] = clamp_preference_score(score)
            except ValueError:
                invalid.append(slug)

        if not cleaned:
            if invalid:
                logger.warning(f"Ignored non-numeric preference scores for user {user_id}: {sorted(invalid)}")
            return {}, sorted(invalid)

        try:
            result = await self.session.execute(
                select(Category.slug, Category.id).where(Category.slug.in_(list(cleaned)))
            )
            categories = dict(result.all())
            ignored = sorted(set(invalid) | {slug for slug in cleaned if slug not in categories})

            existing_result = await self.session.execute(
                select(UserPreference).where(
                    UserPreference.user_id == user_id,
                    UserPreference.category_id.in_(list(categories.values())),
                )
            )
            existing = {row.category_id: row for row in existing_result.scalars().all()}

            saved: Dict[str, int] = {}
            for slug, category_id in categories.items():
                score = cleaned[slug]
                row = existing.get(category_id)
                if row is None:
                    self.session.add(UserPreference(user_id=user_id, category_id=category_id, score=score))
                else:
                    row.score = score
                saved[slug] = score

            await self.session.commit()
            if ignored:
                logger.warning(f"Ignored preference entries for user {user_id}: {ignored}")
            return saved, ignored
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error saving preferences for user {user_id}: {e}")
            raise


# ===== VOTES =====

class SqlVoteStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_average_votes(self, trip_id: int) -> Dict[int, float]:
        try:
            result = await self.session.execute(
                select(TripPlaceVote.place_id, func.avg(TripPlaceVote.score))
                .where(TripPlaceVote.trip_id == trip_id)
                .group_by(TripPlaceVote.place_id)
            )
            return {place_id: float(avg) for place_id, avg in result.all()}
        except Exception as e:
            logger.error(f"Error getting votes for trip {trip_id}: {e}")
            raise


# ===== ITINERARY CACHE =====

def _insert_for(session: AsyncSession):
    """Dialect ``insert`` with ON CONFLICT support for the session's backend"""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Itinerary upsert is not supported on {dialect}")


class SqlItineraryCache:
    """ItineraryCache persisted in ``trip_itineraries``; writes are atomic upserts"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _row(self, key: CacheKey) -> Optional[TripItinerary]:
        result = await self.session.execute(
            select(TripItinerary)
            .where(
                TripItinerary.trip_id == key.trip_id,
                TripItinerary.day_count == key.day_count,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, key: CacheKey) -> Optional[CachedItinerary]:
        try:
            row = await self._row(key)
        except Exception as e:
            logger.error(f"Error reading cached itinerary {key}: {e}")
            raise
        if row is None:
            return None

        itinerary = Itinerary(
            trip_id=row.trip_id,
            day_count=row.day_count,
            schedule=row.schedule,
            cache_info=row.cache_info or {},
        )
        return CachedItinerary(
            itinerary=itinerary,
            radius_meters=row.radius_meters,
            cached_at=row.generated_at,
        )

    async def put(self, key: CacheKey, itinerary: Itinerary, radius_meters: Optional[int] = None) -> None:
        payload = itinerary.model_dump(mode="json")
        now = utcnow()
        values = {
            "schedule": payload["schedule"],
            "cache_info": payload["cache_info"],
            "radius_meters": radius_meters,
            "generated_at": now,
            "updated_at": now,
        }
        insert = _insert_for(self.session)
        statement = insert(TripItinerary).values(
            trip_id=key.trip_id,
            day_count=key.day_count,
            created_at=now,
            **values,
        )
        statement = statement.on_conflict_do_update(
            index_elements=["trip_id", "day_count"],
            set_=values,
        )
        try:
            await self.session.execute(statement)
            await self.session.commit()
            logger.info(f"Cached itinerary for trip {key.trip_id} ({key.day_count} days)")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error caching itinerary {key}: {e}")
            raise
