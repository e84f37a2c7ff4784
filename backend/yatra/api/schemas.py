from datetime import date, datetime
from datetime import time as TimeOfDay
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from yatra.db.models import TripStatus, TripVibe


class _TripParameters(BaseModel):
    """Trip preferences as submitted by the planning form.

    Accepts both snake_case and the form's camelCase keys. Blank optional
    strings are treated as missing.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    destination: str = Field(..., min_length=1, max_length=200)
    start_date: date
    end_date: date
    arrival_time: Optional[TimeOfDay] = None
    departure_time: Optional[TimeOfDay] = None
    budget: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    trip_vibe: TripVibe
    hotel_name: Optional[str] = Field(None, max_length=200)
    hotel_address: Optional[str] = Field(None, max_length=500)
    number_of_people: int = Field(2, ge=1, le=50)

    @field_validator('arrival_time', 'departure_time', 'hotel_name', 'hotel_address', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator('destination')
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Destination cannot be empty")
        return v.strip()

    @model_validator(mode='after')
    def validate_date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


# ===== TRIP SCHEMAS =====

class TripCreate(_TripParameters):
    title: str = Field(..., min_length=1, max_length=200)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class TripRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    destination: str
    start_date: date
    end_date: date
    arrival_time: Optional[TimeOfDay] = None
    departure_time: Optional[TimeOfDay] = None
    budget: Decimal
    trip_vibe: TripVibe
    hotel_name: Optional[str] = None
    hotel_address: Optional[str] = None
    number_of_people: int
    status: TripStatus
    duration_days: int
    created_at: datetime
    updated_at: datetime


class DailyItineraryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    trip_id: UUID
    day_number: int
    activities: List[Dict[str, Any]] = []
    attractions: List[Dict[str, Any]] = []
    food_recommendations: List[Dict[str, Any]] = []
    travel_times: Dict[str, Any] = {}
    weather_info: Dict[str, Any] = {}


class DayCostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day_number: int
    activities_per_person: float
    activities_group: float
    attractions_per_person: float
    attractions_group: float
    food_per_person: float
    food_group: float
    total_per_person: float
    total_group: float


class CostSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    party_size: int
    total_for_group: float
    per_person: int
    budget_used_percent: int
    days: List[DayCostRead] = []


class TripDetailRead(BaseModel):
    trip: TripRead
    days: List[DailyItineraryRead]
    cost_summary: CostSummaryRead


# ===== ITINERARY GENERATION SCHEMAS =====

class GenerateItineraryRequest(_TripParameters):
    trip_id: UUID


class GenerateItineraryResponse(BaseModel):
    success: bool = True
    itinerary: Dict[str, Any]
    usage: int


class UsageRead(BaseModel):
    usage_date: date
    request_count: int
    daily_limit: int
    remaining: int


class ErrorResponse(BaseModel):
    error: str
    code: str
