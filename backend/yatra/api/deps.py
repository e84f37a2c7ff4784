from typing import AsyncGenerator

import httpx
from fastapi import Depends

from yatra.core.settings import Settings, get_settings


async def get_http_client(settings: Settings = Depends(get_settings)) -> AsyncGenerator[httpx.AsyncClient, None]:
    """One outbound HTTP client per request, shared by every upstream call"""
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client
