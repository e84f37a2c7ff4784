"""
Travel-time enrichment: driving times from the lodging to the destination's
top tourist attractions, via Google geocoding, nearby search and the
distance matrix. Never raises; any failed step degrades to "".
"""

import logging
from collections import namedtuple
from typing import Any, Dict, List, Optional, Tuple

import httpx

from yatra.core.settings import Settings

logger = logging.getLogger(__name__)

TravelTime = namedtuple("TravelTime", ["attraction", "distance", "duration"])


class TravelContextUnavailable(Exception):
    """A maps lookup returned nothing usable"""


async def _get_json(client: httpx.AsyncClient, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
    response = await client.get(url, params=params)
    response.raise_for_status()
    return response.json()


async def geocode(client: httpx.AsyncClient, settings: Settings, address: str) -> Tuple[float, float]:
    data = await _get_json(client, f"{settings.GOOGLE_MAPS_BASE_URL}/geocode/json", {
        "address": address,
        "key": settings.GOOGLE_MAPS_API_KEY,
    })
    results = data.get("results") or []
    if not results:
        raise TravelContextUnavailable(f"No geocode result for {address!r}")
    location = results[0]["geometry"]["location"]
    return location["lat"], location["lng"]


async def nearby_attractions(client: httpx.AsyncClient, settings: Settings,
                             lat: float, lng: float) -> List[Dict[str, Any]]:
    data = await _get_json(client, f"{settings.GOOGLE_MAPS_BASE_URL}/place/nearbysearch/json", {
        "location": f"{lat},{lng}",
        "radius": settings.POI_SEARCH_RADIUS_M,
        "type": "tourist_attraction",
        "key": settings.GOOGLE_MAPS_API_KEY,
    })
    places = (data.get("results") or [])[:settings.POI_LIMIT]
    if not places:
        raise TravelContextUnavailable("No tourist attractions found nearby")
    return places


async def driving_times(client: httpx.AsyncClient, settings: Settings, origin: str,
                        places: List[Dict[str, Any]]) -> List[TravelTime]:
    """One batched distance-matrix query from `origin` to every place"""
    destinations = "|".join(
        f"{p['geometry']['location']['lat']},{p['geometry']['location']['lng']}" for p in places
    )
    data = await _get_json(client, f"{settings.GOOGLE_MAPS_BASE_URL}/distancematrix/json", {
        "origins": origin,
        "destinations": destinations,
        "mode": "driving",
        "key": settings.GOOGLE_MAPS_API_KEY,
    })
    rows = data.get("rows") or []
    elements = rows[0].get("elements") if rows else None
    if not elements:
        raise TravelContextUnavailable("Distance matrix returned no elements")

    times = []
    for place, element in zip(places, elements):
        times.append(TravelTime(
            attraction=place.get("name", "Unknown"),
            distance=(element.get("distance") or {}).get("text") or "Unknown",
            duration=(element.get("duration") or {}).get("text") or "Unknown",
        ))
    return times


def format_travel_context(times: List[TravelTime]) -> str:
    if not times:
        return ""
    return "Travel times from hotel: " + ", ".join(
        f"{t.attraction}: {t.duration} ({t.distance})" for t in times
    )


async def fetch_travel_context(client: httpx.AsyncClient, settings: Settings, destination: str,
                               hotel_address: Optional[str]) -> str:
    """Travel-time summary from the lodging, or "" when unavailable"""
    if not hotel_address:
        return ""
    if not settings.GOOGLE_MAPS_API_KEY:
        logger.info("Google Maps API key not configured, skipping travel context")
        return ""

    try:
        lat, lng = await geocode(client, settings, destination)
        places = await nearby_attractions(client, settings, lat, lng)
        times = await driving_times(client, settings, hotel_address, places)
    except TravelContextUnavailable as e:
        logger.warning(f"Travel context unavailable: {e}")
        return ""
    except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
        logger.warning(f"Google Maps API error: {e}")
        return ""

    logger.info(f"Travel context built for {len(times)} attractions")
    return format_travel_context(times)
