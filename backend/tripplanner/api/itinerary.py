import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from tripplanner.api.schemas import FullRouteRequest, GroupPreferencesRead, ItineraryRead
from tripplanner.core.itinerary.preferences import PreferenceAggregator
from tripplanner.core.itinerary.service import ItineraryService
from tripplanner.core.settings import Settings
from tripplanner.db.repositories import (
    SqlItineraryCache, SqlPreferenceStore, SqlTripRepository, SqlVoteStore
)
from tripplanner.db.session import get_db_session

logger = logging.getLogger(__name__)

settings = Settings()

router = APIRouter(prefix="/trips", tags=["itineraries"])

limiter = Limiter(key_func=get_remote_address, enabled=settings.ENABLE_RATE_LIMITING)


def get_itinerary_service(session: AsyncSession = Depends(get_db_session)) -> ItineraryService:
    return ItineraryService(
        trips=SqlTripRepository(session),
        aggregator=PreferenceAggregator(SqlPreferenceStore(session)),
        votes=SqlVoteStore(session),
        cache=SqlItineraryCache(session),
        settings=settings,
    )


@router.get("/{trip_id}/preferences", response_model=GroupPreferencesRead,
    summary="Aggregated group preferences",
)
@limiter.limit(settings.RATE_LIMIT_READ)
async def aggregate_preferences(
    request: Request,
    trip_id: int,
    service: ItineraryService = Depends(get_itinerary_service),
):
    prefs = await service.aggregate_preferences(trip_id)
    return GroupPreferencesRead(trip_id=trip_id, group_preferences=prefs)


@router.get("/{trip_id}/itinerary/generate", response_model=ItineraryRead,
    responses={
        400: {"description": "Trip has no places or no origin point"},
        404: {"description": "Trip not found"},
    },
    summary="Generate a one-day itinerary",
)
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def generate(
    request: Request,
    trip_id: int,
    service: ItineraryService = Depends(get_itinerary_service),
):
    return await service.generate(trip_id)


@router.post("/{trip_id}/itinerary/generate-full", response_model=ItineraryRead,
    responses={
        400: {"description": "Trip has no places or no origin point"},
        404: {"description": "Trip not found"},
        422: {"description": "days or radius out of range"},
    },
    summary="Generate and cache a multi-day itinerary",
)
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def generate_full_route(
    request: Request,
    trip_id: int,
    payload: FullRouteRequest,
    service: ItineraryService = Depends(get_itinerary_service),
):
    return await service.generate_full_route(
        trip_id, payload.days, payload.radius, reuse_cached=payload.reuse_cached
    )


@router.get("/{trip_id}/itinerary", response_model=ItineraryRead,
    responses={404: {"description": "No cached itinerary for this day count"}},
    summary="Read a cached multi-day itinerary",
)
@limiter.limit(settings.RATE_LIMIT_READ)
async def read_cached_itinerary(
    request: Request,
    trip_id: int,
    days: int = Query(
        default=settings.DEFAULT_ITINERARY_DAYS,
        ge=settings.MIN_ITINERARY_DAYS,
        le=settings.MAX_ITINERARY_DAYS,
    ),
    service: ItineraryService = Depends(get_itinerary_service),
):
    itinerary = await service.get_cached_itinerary(trip_id, days)
    if itinerary is None:
        logger.info(f"No cached itinerary for trip {trip_id} ({days} days)")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No cached itinerary for {days} day(s).",
        )
    return itinerary
