"""
Image enrichment: attach a landscape Unsplash photo to every attraction.

Lookups run one at a time with a fixed pause after each attraction to stay
under the image API's rate limit. Failed lookups are logged and skipped.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Optional

import httpx

from yatra.core.settings import Settings

logger = logging.getLogger(__name__)

_UNSAFE_QUERY_CHARS = re.compile(r"[^a-zA-Z0-9\s]")


def search_query(name: str, destination: str) -> str:
    return _UNSAFE_QUERY_CHARS.sub("", f"{name} {destination}")


async def search_photo(client: httpx.AsyncClient, settings: Settings, query: str) -> Optional[str]:
    """URL of the first landscape result for `query`.

    Returns None when the search has no results. Raises httpx.HTTPStatusError
    on a non-success response.
    """
    response = await client.get(
        f"{settings.UNSPLASH_BASE_URL}/search/photos",
        params={"query": query, "per_page": 1, "orientation": "landscape"},
        headers={"Authorization": f"Client-ID {settings.UNSPLASH_ACCESS_KEY}"},
    )
    response.raise_for_status()
    results = response.json().get("results") or []
    if not results:
        return None
    return results[0]["urls"]["regular"]


async def attach_attraction_images(client: httpx.AsyncClient, settings: Settings,
                                   itinerary: Dict[str, Any], destination: str) -> int:
    """Set `image_url` on attractions in place; returns how many got an image"""
    if not settings.UNSPLASH_ACCESS_KEY:
        logger.info("Unsplash API key not found, skipping image fetching")
        return 0

    days = itinerary.get("days")
    if not isinstance(days, list):
        return 0

    attached = 0
    for day in days:
        attractions = day.get("attractions") if isinstance(day, dict) else None
        if not isinstance(attractions, list):
            continue

        for attraction in attractions:
            if not isinstance(attraction, dict):
                continue
            name = str(attraction.get("name") or "")
            try:
                url = await search_photo(client, settings, search_query(name, destination))
                if url is None:
                    url = await search_photo(client, settings, destination)
                    if url:
                        logger.info(f"Found fallback image for {name}")
                else:
                    logger.info(f"Found image for {name}")
                if url:
                    attraction["image_url"] = url
                    attached += 1
            except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
                logger.warning(f"Error fetching image for {name}: {e}")

            await asyncio.sleep(settings.IMAGE_REQUEST_DELAY_SECONDS)

    return attached
