import uuid
from datetime import date, datetime, timezone
from datetime import time as TimeOfDay
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID as PyUUID

from pydantic import computed_field
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Index, Numeric, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel


# Enums
class TripVibe(str, Enum):
    RELAX = "Relax"
    ADVENTURE = "Adventure"
    CULTURE = "Culture"
    FOODIE = "Foodie"
    LUXURY = "Luxury"


class TripStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls, name: str, **kwargs) -> Column:
    # store the enum values ("Relax", "draft") rather than member names
    return Column(
        SAEnum(enum_cls, name=name, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        **kwargs,
    )


# Models
class Trip(SQLModel, table=True):
    __tablename__ = "trips"

    __table_args__ = (
        Index('idx_trips_user_id', 'user_id'),
        Index('idx_trips_created_at', 'created_at'),
        CheckConstraint('start_date <= end_date', name='check_valid_date_range'),
        CheckConstraint('number_of_people >= 1', name='check_party_size'),
        CheckConstraint('budget >= 0', name='check_budget_not_negative'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: PyUUID = Field(
        nullable=False,
        description="Identity of the trip owner (token subject)"
    )
    title: str = Field(max_length=200, description="Trip title")
    destination: str = Field(max_length=200, description="Destination name")
    start_date: date = Field(description="First day of the trip")
    end_date: date = Field(description="Last day of the trip")
    arrival_time: Optional[TimeOfDay] = Field(default=None, description="Arrival time of day")
    departure_time: Optional[TimeOfDay] = Field(default=None, description="Departure time of day")
    budget: Decimal = Field(
        sa_column=Column(Numeric(12, 2), nullable=False),
        description="Total budget for the trip (INR)"
    )
    trip_vibe: TripVibe = Field(
        sa_column=_enum_column(TripVibe, "tripvibe", nullable=False),
        description="Travel style"
    )
    hotel_name: Optional[str] = Field(default=None, max_length=200)
    hotel_address: Optional[str] = Field(default=None, max_length=500)
    number_of_people: int = Field(default=2, description="Party size")
    status: TripStatus = Field(
        default=TripStatus.DRAFT,
        sa_column=_enum_column(TripStatus, "tripstatus", nullable=False, default=TripStatus.DRAFT.value),
        description="Lifecycle status, set to generated by the synthesis flow"
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=_utcnow),
    )

    @computed_field
    @property
    def duration_days(self) -> int:
        """Number of calendar days the trip spans, inclusive"""
        if self.start_date and self.end_date:
            return (self.end_date - self.start_date).days + 1
        return 0


class DailyItinerary(SQLModel, table=True):
    __tablename__ = "itineraries"

    __table_args__ = (
        UniqueConstraint('trip_id', 'day_number', name='uq_itineraries_trip_day'),
        Index('idx_itineraries_trip_id', 'trip_id'),
        CheckConstraint('day_number >= 1', name='check_valid_day_number'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False)
    day_number: int = Field(description="1-based day index within the trip")
    activities: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    attractions: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    food_recommendations: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    travel_times: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    weather_info: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class ApiUsage(SQLModel, table=True):
    """Per-identity, per-day generation counter"""
    __tablename__ = "api_usage"

    __table_args__ = (
        CheckConstraint('request_count >= 0', name='check_request_count_not_negative'),
    )

    user_id: PyUUID = Field(primary_key=True)
    usage_date: date = Field(primary_key=True)
    request_count: int = Field(default=0, nullable=False)
