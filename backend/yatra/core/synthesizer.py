"""
Itinerary synthesis: prompt construction, the chat completion call and
extraction of the JSON itinerary from the model's reply.
"""

import json
import logging
import re
from datetime import date
from datetime import time as TimeOfDay
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from yatra.core.errors import InternalError, ResponseParseError, UpstreamUnavailableError
from yatra.core.settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a travel expert specializing in Indian destinations. "
    "Always respond with valid JSON format."
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _fmt_time(value: Optional[TimeOfDay]) -> str:
    return value.strftime("%H:%M") if value else "not specified"


def _fmt_budget(value: Decimal) -> str:
    return f"{value:,.0f}"


def build_prompt(
    *,
    destination: str,
    start_date: date,
    end_date: date,
    budget: Decimal,
    trip_vibe: str,
    number_of_people: int,
    arrival_time: Optional[TimeOfDay] = None,
    departure_time: Optional[TimeOfDay] = None,
    hotel_name: Optional[str] = None,
    hotel_address: Optional[str] = None,
    weather_context: str = "",
    travel_context: str = "",
) -> str:
    """Generation prompt embedding every trip parameter and enrichment context.

    Lodging instructions (and the travel-time context tied to them) are only
    included when both hotel name and address are known.
    """
    people = number_of_people
    has_hotel = bool(hotel_name and hotel_address)

    sections = [
        f"Create a detailed day-by-day itinerary for {people} people visiting {destination}, "
        f"from {start_date.isoformat()} to {end_date.isoformat()}, "
        f"arrival time {_fmt_time(arrival_time)}, departure time {_fmt_time(departure_time)}, "
        f"budget ₹{_fmt_budget(budget)}, trip vibe: {trip_vibe}."
    ]

    if has_hotel:
        hotel_info = (
            f"User is staying at {hotel_name} located at {hotel_address}. "
            "Recommend activities and attractions near this hotel and optimize travel times from this location."
        )
        if travel_context:
            hotel_info += f" {travel_context}"
        sections.append(hotel_info)

    if weather_context:
        sections.append(weather_context)

    sections.append(
        f"IMPORTANT: Calculate all costs for {people} people. Include both per-person and total group costs."
    )

    checklist = ["Include for each attraction:"]
    if has_hotel:
        checklist += [
            "- Distance from hotel",
            "- Estimated travel time from hotel",
        ]
    checklist += [
        "- Best time to visit considering traffic",
        "- Popular attractions with descriptions (focus on Indian culture if destination is in India)",
        "- Hidden gems and seasonal recommendations",
        f"- Local food recommendations with price ranges (Budget/Mid/High) and costs for {people} people",
        "- Suggested visit times for each attraction",
        "- Travel tips specific to the destination",
        "- Weather-appropriate activity suggestions",
        f"- Cost calculations for the entire group of {people} people",
    ]
    sections.append("\n".join(checklist))

    sections.append("Format the response as JSON with this structure:\n" + _schema_example(people, has_hotel))
    return "\n\n".join(sections)


def _schema_example(people: int, has_hotel: bool) -> str:
    attraction = {
        "name": "Attraction name",
        "description": "Description",
        "visit_time": "Best time to visit",
        "entrance_fee": 200,
    }
    if has_hotel:
        attraction["distance_from_hotel"] = "2.5 km"
        attraction["travel_time_from_hotel"] = "15 minutes"
    attraction["recommended_duration"] = "2 hours"

    schema = {
        "days": [
            {
                "day": 1,
                "date": "YYYY-MM-DD",
                "activities": [
                    {
                        "time": "09:00",
                        "title": "Activity name",
                        "description": "Detailed description",
                        "duration": "2 hours",
                        "cost_estimate": 500,
                    }
                ],
                "attractions": [attraction],
                "food_recommendations": [
                    {
                        "name": "Restaurant/dish name",
                        "cuisine": "Type of cuisine",
                        "price_range": "Budget/Mid/High",
                        "cost_per_person": 300,
                        "total_cost_for_group": people * 300,
                        "description": "What makes it special",
                    }
                ],
                "estimated_day_cost": 2000,
                "estimated_day_cost_for_group": people * 2000,
            }
        ],
        "travel_tips": ["tip1", "tip2"],
        "total_cost_per_person": 15000,
        f"total_cost_for_{people}_people": people * 15000,
        "cost_breakdown": {
            "accommodation_per_night": 3000,
            "food_per_person_per_day": 1000,
            "attractions_per_person": 500,
            "transport_per_person": 800,
        },
    }
    return json.dumps(schema, indent=2, ensure_ascii=False)


def extract_json_object(content: str, strict: bool = False) -> Dict[str, Any]:
    """Parse the itinerary object out of a completion reply.

    Lenient mode takes the span from the first "{" to the last "}" and, if
    that does not parse, the first balanced object starting at the first "{".
    Strict mode accepts only a reply that is a single JSON object, optionally
    wrapped in a Markdown code fence.
    """
    text = content.strip()

    if strict:
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise ResponseParseError(detail=f"Reply is not pure JSON: {e}") from e
    else:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ResponseParseError(detail="No JSON found in response")
        try:
            parsed = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            try:
                parsed, _ = json.JSONDecoder().raw_decode(text, start)
            except json.JSONDecodeError as e:
                raise ResponseParseError(detail=f"Invalid JSON in response: {e}") from e

    if not isinstance(parsed, dict):
        raise ResponseParseError(detail="Response JSON is not an object")
    return parsed


async def request_completion(client: httpx.AsyncClient, settings: Settings, prompt: str) -> str:
    """Send the prompt as one chat completion and return the first choice's text"""
    if not settings.SONAR_API_KEY:
        logger.error("SONAR_API_KEY not found")
        raise InternalError("API key configuration error")

    payload = {
        "model": settings.LLM_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": settings.LLM_MAX_TOKENS,
        "temperature": settings.LLM_TEMPERATURE,
    }

    try:
        response = await client.post(
            settings.LLM_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {settings.SONAR_API_KEY}"},
        )
    except httpx.HTTPError as e:
        logger.error(f"Completion API request failed: {e}")
        raise UpstreamUnavailableError(detail=str(e)) from e

    if not response.is_success:
        logger.error(f"Completion API error {response.status_code}: {response.text[:500]}")
        raise UpstreamUnavailableError(detail=f"Completion API returned {response.status_code}")

    try:
        content = response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ResponseParseError(detail="No content in AI response") from e
    if not content or not isinstance(content, str):
        raise ResponseParseError(detail="No content in AI response")

    logger.info("Completion response received")
    return content


async def synthesize_itinerary(client: httpx.AsyncClient, settings: Settings, prompt: str) -> Dict[str, Any]:
    content = await request_completion(client, settings, prompt)
    try:
        return extract_json_object(content, strict=settings.LLM_STRICT_JSON)
    except ResponseParseError as e:
        logger.error(f"JSON parsing error: {e.detail}")
        raise
