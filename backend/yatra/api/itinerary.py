import time
from contextlib import asynccontextmanager
from typing import Any, Dict

import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from yatra.api.deps import get_http_client
from yatra.api.schemas import (
    ErrorResponse,
    GenerateItineraryRequest,
    GenerateItineraryResponse,
    UsageRead,
)
from yatra.core.day_entries import normalize_days
from yatra.core.enrichment.images import attach_attraction_images
from yatra.core.enrichment.travel_times import fetch_travel_context
from yatra.core.enrichment.weather import fetch_weather_context
from yatra.core.errors import InternalError, ItineraryGenerationError
from yatra.core.quota import consume_generation_quota, get_usage_count, utc_today
from yatra.core.rate_limit import limiter
from yatra.core.security import CurrentUser, get_current_user
from yatra.core.settings import Settings, get_settings
from yatra.core.synthesizer import build_prompt, synthesize_itinerary
from yatra.db.crud import get_trip, replace_trip_itinerary
from yatra.db.models import Trip
from yatra.db.session import get_db_session

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


@asynccontextmanager
async def performance_timer(operation: str):
    """Context manager for timing operations"""
    start = time.time()
    try:
        yield
    finally:
        duration = time.time() - start
        logger.info("operation_timed", operation=operation, duration_s=round(duration, 2))


class ItineraryService:
    """Runs the generation pipeline for one request.

    quota -> weather -> travel times -> completion -> images -> persistence,
    strictly one step after another.
    """

    def __init__(self, session: AsyncSession, client: httpx.AsyncClient, settings: Settings):
        self.session = session
        self.client = client
        self.settings = settings

    async def load_owned_trip(self, trip_id, user: CurrentUser) -> Trip:
        trip = await get_trip(self.session, trip_id)
        if trip is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
        if trip.user_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to modify this trip")
        return trip

    async def gather_context(self, params: GenerateItineraryRequest) -> Dict[str, str]:
        weather_context = await fetch_weather_context(self.client, self.settings, params.destination)
        travel_context = await fetch_travel_context(
            self.client, self.settings, params.destination, params.hotel_address
        )
        return {"weather_context": weather_context, "travel_context": travel_context}

    def prompt_for(self, params: GenerateItineraryRequest, weather_context: str = "", travel_context: str = "") -> str:
        return build_prompt(
            destination=params.destination,
            start_date=params.start_date,
            end_date=params.end_date,
            budget=params.budget,
            trip_vibe=params.trip_vibe.value,
            number_of_people=params.number_of_people,
            arrival_time=params.arrival_time,
            departure_time=params.departure_time,
            hotel_name=params.hotel_name,
            hotel_address=params.hotel_address,
            weather_context=weather_context,
            travel_context=travel_context,
        )

    async def generate(self, user: CurrentUser, params: GenerateItineraryRequest) -> GenerateItineraryResponse:
        log = logger.bind(user_id=str(user.id), trip_id=str(params.trip_id))
        log.info("itinerary_request_received", destination=params.destination)

        trip = await self.load_owned_trip(params.trip_id, user)

        usage = await consume_generation_quota(
            self.session, user.id, self.settings.DAILY_GENERATION_LIMIT
        )

        if not self.settings.SONAR_API_KEY:
            log.error("completion_api_key_missing")
            raise InternalError("API key configuration error")

        context = await self.gather_context(params)
        prompt = self.prompt_for(params, **context)

        log.info("completion_requested", has_weather=bool(context["weather_context"]),
                 has_travel_times=bool(context["travel_context"]))
        itinerary = await synthesize_itinerary(self.client, self.settings, prompt)

        images = await attach_attraction_images(self.client, self.settings, itinerary, params.destination)
        log.info("attraction_images_attached", count=images)

        days = normalize_days(itinerary)
        if len(days) != trip.duration_days:
            log.warning("day_count_mismatch", synthesized=len(days), expected=trip.duration_days)

        weather_info = itinerary.get("weather_forecast")
        await replace_trip_itinerary(
            self.session, trip.id, days, weather_info if isinstance(weather_info, dict) else {}
        )

        log.info("itinerary_generation_completed", days=len(days), usage=usage)
        return GenerateItineraryResponse(itinerary=itinerary, usage=usage)


async def run_generation(service: ItineraryService, user: CurrentUser,
                         params: GenerateItineraryRequest) -> GenerateItineraryResponse:
    """Run the pipeline, turning unexpected failures into InternalError"""
    async with performance_timer("itinerary_generation"):
        try:
            return await service.generate(user, params)
        except (HTTPException, ItineraryGenerationError):
            raise
        except Exception as e:
            logger.exception("itinerary_generation_failed", error=str(e))
            raise InternalError(detail=str(e)) from e


ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"description": "Trip belongs to another user"},
    404: {"description": "Trip not found"},
    429: {"model": ErrorResponse, "description": "Daily generation limit reached"},
    500: {"model": ErrorResponse, "description": "Persistence failure or internal error"},
    502: {"model": ErrorResponse, "description": "Completion output could not be parsed"},
    503: {"model": ErrorResponse, "description": "Completion service unavailable"},
}


@router.post("/generate",
    response_model=GenerateItineraryResponse,
    responses=ERROR_RESPONSES,
    summary="Generate a day-by-day itinerary for a trip",
    description="Enriches the trip with weather and travel times, asks the completion API for an itinerary, "
                "attaches attraction photos and stores one record per day.",
)
@limiter.limit(get_settings().RATE_LIMIT_GENERATE)
async def generate_itinerary(
    request: Request,
    payload: GenerateItineraryRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
):
    service = ItineraryService(session, client, settings)
    return await run_generation(service, current_user, payload)


@router.get("/usage", response_model=UsageRead)
@limiter.limit(get_settings().RATE_LIMIT_READ)
async def read_usage(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
):
    """Today's generation count for the caller"""
    today = utc_today()
    count = await get_usage_count(session, current_user.id, today)
    limit = settings.DAILY_GENERATION_LIMIT
    return UsageRead(
        usage_date=today,
        request_count=count,
        daily_limit=limit,
        remaining=max(0, limit - count),
    )
