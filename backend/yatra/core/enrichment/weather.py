"""
Weather enrichment: a short forecast summary for the generation prompt.

Never raises; any failure degrades to an empty context string.
"""

import logging
from collections import namedtuple
from typing import Any, Dict, List

import httpx

from yatra.core.settings import Settings

logger = logging.getLogger(__name__)

ForecastEntry = namedtuple("ForecastEntry", ["date", "temp", "condition", "description"])


def parse_forecast(payload: Dict[str, Any], limit: int = 5) -> List[ForecastEntry]:
    """Project the first `limit` forecast slots to (date, rounded temp, condition)"""
    entries = []
    for item in payload["list"][:limit]:
        weather = item["weather"][0]
        entries.append(ForecastEntry(
            date=item["dt_txt"].split(" ")[0],
            temp=round(item["main"]["temp"]),
            condition=weather["main"],
            description=weather.get("description", ""),
        ))
    return entries


def format_weather_context(entries: List[ForecastEntry]) -> str:
    if not entries:
        return ""
    return "Weather forecast: " + ", ".join(
        f"{e.date}: {e.temp}°C, {e.condition}" for e in entries
    )


async def fetch_weather_context(client: httpx.AsyncClient, settings: Settings, destination: str) -> str:
    """Forecast summary for `destination`, or "" when unavailable"""
    if not settings.OPENWEATHER_API_KEY:
        logger.info("OpenWeather API key not configured, skipping weather context")
        return ""

    try:
        response = await client.get(
            f"{settings.OPENWEATHER_BASE_URL}/forecast",
            params={
                "q": destination,
                "appid": settings.OPENWEATHER_API_KEY,
                "units": "metric",
            },
        )
        response.raise_for_status()
        payload = response.json()
        if not payload.get("list"):
            logger.warning(f"No forecast entries returned for {destination}")
            return ""
        entries = parse_forecast(payload, settings.FORECAST_ENTRIES)
    except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
        logger.warning(f"Weather API error for {destination}: {e}")
        return ""

    context = format_weather_context(entries)
    logger.info(f"Weather context built with {len(entries)} entries")
    return context
