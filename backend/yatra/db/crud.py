"""
CRUD operations for trips and their day-by-day itineraries
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yatra.core.day_entries import DayPlan
from yatra.core.errors import PersistenceError
from yatra.db.models import DailyItinerary, Trip, TripStatus

logger = logging.getLogger(__name__)

# ===== TRIP CRUD OPERATIONS =====

async def create_trip(session: AsyncSession, user_id: UUID, **fields: Any) -> Trip:
    """Create a new draft trip"""
    try:
        trip = Trip(user_id=user_id, status=TripStatus.DRAFT, **fields)
        session.add(trip)
        await session.commit()
        await session.refresh(trip)
        logger.info(f"Created trip {trip.id} for user {user_id}")
        return trip
    except Exception as e:
        await session.rollback()
        logger.error(f"Error creating trip: {e}")
        raise


async def get_trip(session: AsyncSession, trip_id: UUID) -> Optional[Trip]:
    """Get trip by ID"""
    result = await session.execute(select(Trip).where(Trip.id == trip_id))
    return result.scalar_one_or_none()


async def get_user_trips(session: AsyncSession, user_id: UUID, skip: int = 0, limit: int = 100) -> List[Trip]:
    """Trips owned by `user_id`, newest first"""
    result = await session.execute(
        select(Trip)
        .where(Trip.user_id == user_id)
        .order_by(Trip.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


# ===== ITINERARY DAY OPERATIONS =====

async def get_trip_days(session: AsyncSession, trip_id: UUID) -> List[DailyItinerary]:
    """Day records for a trip, in day order"""
    result = await session.execute(
        select(DailyItinerary)
        .where(DailyItinerary.trip_id == trip_id)
        .order_by(DailyItinerary.day_number)
    )
    return list(result.scalars().all())


def build_day_rows(trip_id: UUID, days: List[DayPlan],
                   weather_info: Optional[Dict[str, Any]] = None) -> List[DailyItinerary]:
    """One row per synthesized day, numbered 1..n in list order"""
    return [
        DailyItinerary(
            trip_id=trip_id,
            day_number=index,
            activities=day.entries_as_json("activities"),
            attractions=day.entries_as_json("attractions"),
            food_recommendations=day.entries_as_json("food_recommendations"),
            travel_times={},
            weather_info=weather_info or {},
        )
        for index, day in enumerate(days, start=1)
    ]


async def replace_trip_itinerary(session: AsyncSession, trip_id: UUID, days: List[DayPlan],
                                 weather_info: Optional[Dict[str, Any]] = None) -> List[DailyItinerary]:
    """Replace a trip's day records and mark it generated, in one transaction.

    On any database error the previous days are left in place and
    PersistenceError is raised.
    """
    rows = build_day_rows(trip_id, days, weather_info)
    try:
        await session.execute(delete(DailyItinerary).where(DailyItinerary.trip_id == trip_id))
        session.add_all(rows)
        await session.flush()
        await session.execute(
            update(Trip)
            .where(Trip.id == trip_id)
            .values(status=TripStatus.GENERATED, updated_at=datetime.now(timezone.utc))
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error saving itinerary for trip {trip_id}: {e}")
        raise PersistenceError(detail=str(e)) from e

    logger.info(f"Saved {len(rows)} itinerary days for trip {trip_id}")
    return rows
