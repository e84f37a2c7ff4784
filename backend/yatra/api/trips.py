"""
Trip API endpoints: create, list, detail with cost rollup, regenerate
"""

import logging
from typing import List
from uuid import UUID

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yatra.api.deps import get_http_client
from yatra.api.itinerary import ERROR_RESPONSES, ItineraryService, run_generation
from yatra.api.schemas import (
    CostSummaryRead,
    DailyItineraryRead,
    GenerateItineraryRequest,
    GenerateItineraryResponse,
    TripCreate,
    TripDetailRead,
    TripRead,
)
from yatra.core.costs import summarize_trip_costs
from yatra.core.rate_limit import limiter
from yatra.core.security import CurrentUser, get_current_user
from yatra.core.settings import Settings, get_settings
from yatra.db.crud import create_trip, get_trip, get_trip_days, get_user_trips
from yatra.db.models import Trip
from yatra.db.session import get_db_session

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/trips", tags=["trips"])


async def _owned_trip(session: AsyncSession, trip_id: UUID, user: CurrentUser) -> Trip:
    trip = await get_trip(session, trip_id)
    if not trip:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
    if trip.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to access this trip")
    return trip


@router.post("", response_model=TripRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_settings().RATE_LIMIT_CREATE)
async def create_trip_endpoint(
    request: Request,
    payload: TripCreate,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Save a draft trip for the caller"""
    try:
        trip = await create_trip(session, current_user.id, **payload.model_dump())
    except SQLAlchemyError as e:
        logger.error(f"Error creating trip: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create trip"
        )
    return trip


@router.get("", response_model=List[TripRead])
@limiter.limit(get_settings().RATE_LIMIT_LIST)
async def list_trips(
    request: Request,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await get_user_trips(session, current_user.id, skip=skip, limit=limit)


@router.get("/{trip_id}", response_model=TripDetailRead)
@limiter.limit(get_settings().RATE_LIMIT_READ)
async def read_trip(
    request: Request,
    trip_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Trip with its stored days and the cost rollup over them"""
    trip = await _owned_trip(session, trip_id, current_user)
    days = await get_trip_days(session, trip.id)
    summary = summarize_trip_costs(days, trip.number_of_people, trip.budget)

    return TripDetailRead(
        trip=TripRead.model_validate(trip),
        days=[DailyItineraryRead.model_validate(day) for day in days],
        cost_summary=CostSummaryRead.model_validate(summary, from_attributes=True),
    )


@router.post("/{trip_id}/regenerate",
    response_model=GenerateItineraryResponse,
    responses=ERROR_RESPONSES,
    summary="Regenerate a trip's itinerary from its stored parameters",
)
@limiter.limit(get_settings().RATE_LIMIT_GENERATE)
async def regenerate_trip(
    request: Request,
    trip_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    trip = await _owned_trip(session, trip_id, current_user)
    params = GenerateItineraryRequest(
        trip_id=trip.id,
        destination=trip.destination,
        start_date=trip.start_date,
        end_date=trip.end_date,
        arrival_time=trip.arrival_time,
        departure_time=trip.departure_time,
        budget=trip.budget,
        trip_vibe=trip.trip_vibe,
        hotel_name=trip.hotel_name,
        hotel_address=trip.hotel_address,
        number_of_people=trip.number_of_people,
    )
    service = ItineraryService(session, client, settings)
    return await run_generation(service, current_user, params)
