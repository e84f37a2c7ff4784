"""
Validation for the loosely-typed day plans returned by the completion API.

The generator's output shape is not guaranteed, so every field is optional.
Known cost fields are coerced to numbers (or None), known text fields to
strings, and unknown keys pass through untouched. Entries that are not JSON
objects are dropped.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)

Number = Union[int, float]


def coerce_number(value: Any) -> Optional[Number]:
    """Return value as an int/float, or None when it is not a finite number"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = value.replace(",", "").replace("₹", "").strip()
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def _coerce_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


class _Entry(BaseModel):
    model_config = ConfigDict(extra="allow")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_fields(cls, value, info):
        field = cls.model_fields.get(info.field_name)
        if field is None:
            return value
        if field.annotation == Optional[Number]:
            return coerce_number(value)
        if field.annotation == Optional[str]:
            return _coerce_text(value)
        return value


class ActivityEntry(_Entry):
    time: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None
    cost_estimate: Optional[Number] = None


class AttractionEntry(_Entry):
    name: Optional[str] = None
    description: Optional[str] = None
    visit_time: Optional[str] = None
    entrance_fee: Optional[Number] = None
    distance_from_hotel: Optional[str] = None
    travel_time_from_hotel: Optional[str] = None
    recommended_duration: Optional[str] = None
    image_url: Optional[str] = None


class FoodEntry(_Entry):
    name: Optional[str] = None
    cuisine: Optional[str] = None
    price_range: Optional[str] = None
    cost_per_person: Optional[Number] = None
    total_cost_for_group: Optional[Number] = None
    description: Optional[str] = None


class DayPlan(BaseModel):
    model_config = ConfigDict(extra="allow")

    day: Optional[int] = None
    date: Optional[str] = None
    activities: List[ActivityEntry] = []
    attractions: List[AttractionEntry] = []
    food_recommendations: List[FoodEntry] = []
    estimated_day_cost: Optional[Number] = None
    estimated_day_cost_for_group: Optional[Number] = None

    @field_validator("day", mode="before")
    @classmethod
    def _coerce_day(cls, value):
        number = coerce_number(value)
        return int(number) if number is not None else None

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value):
        return _coerce_text(value)

    @field_validator("estimated_day_cost", "estimated_day_cost_for_group", mode="before")
    @classmethod
    def _coerce_costs(cls, value):
        return coerce_number(value)

    @field_validator("activities", "attractions", "food_recommendations", mode="before")
    @classmethod
    def _entries_only(cls, value, info):
        if not isinstance(value, list):
            return []
        entries = []
        model = cls.model_fields[info.field_name].annotation.__args__[0]
        for raw in value:
            if not isinstance(raw, dict):
                logger.warning(f"Dropping non-object entry in {info.field_name}: {raw!r}")
                continue
            try:
                entries.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Dropping invalid entry in {info.field_name}: {e}")
        return entries

    def entries_as_json(self, field_name: str) -> List[Dict[str, Any]]:
        return [entry.model_dump(mode="json") for entry in getattr(self, field_name)]


def normalize_days(itinerary: Dict[str, Any]) -> List[DayPlan]:
    """Validate the `days` list of a synthesized itinerary"""
    raw_days = itinerary.get("days")
    if not isinstance(raw_days, list):
        logger.warning("Synthesized itinerary has no 'days' list")
        return []

    days = []
    for index, raw in enumerate(raw_days):
        if not isinstance(raw, dict):
            logger.warning(f"Dropping day {index + 1}: not an object")
            continue
        try:
            days.append(DayPlan.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Dropping day {index + 1}: {e}")
    return days
