"""
Shared fixtures: a throwaway aiosqlite database, test settings and a fake
upstream that stands in for the completion, weather, maps and photo APIs.
"""

import json
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import yatra.db.models  # noqa: F401
from yatra.core.security import CurrentUser, create_access_token
from yatra.core.settings import Settings
from yatra.db.crud import create_trip
from yatra.db.models import TripVibe


def completion_reply(content: str) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def sample_itinerary(days: int = 2, prefix: str = "Day") -> Dict[str, Any]:
    return {
        "days": [
            {
                "day": n,
                "date": f"2024-12-{14 + n:02d}",
                "activities": [
                    {"time": "09:00", "title": f"{prefix} {n} beach walk", "duration": "2 hours", "cost_estimate": 500},
                    {"time": "14:00", "title": f"{prefix} {n} spice farm", "duration": "3 hours", "cost_estimate": 300},
                ],
                "attractions": [
                    {"name": "Fort Aguada", "description": "Portuguese fort", "entrance_fee": 50},
                ],
                "food_recommendations": [
                    {"name": "Fish thali", "cuisine": "Goan", "price_range": "Mid",
                     "cost_per_person": 400, "total_cost_for_group": 800},
                ],
                "estimated_day_cost": 1250,
                "estimated_day_cost_for_group": 2500,
            }
            for n in range(1, days + 1)
        ],
        "travel_tips": ["Carry sunscreen"],
        "total_cost_per_person": 2500,
    }


class FakeUpstream:
    """MockTransport handler routing by URL path suffix.

    Each route holds a queue of (status, body) replies; the last one repeats.
    """

    def __init__(self):
        self.routes: Dict[str, List[tuple]] = {}
        self.requests: List[httpx.Request] = []

    def route(self, path_suffix: str, *replies: Any, status_code: int = 200) -> None:
        queue = []
        for reply in replies:
            if isinstance(reply, tuple):
                queue.append(reply)
            else:
                queue.append((status_code, reply))
        self.routes[path_suffix] = queue

    def completion(self, content: str, status_code: int = 200) -> None:
        self.route("/chat/completions", completion_reply(content), status_code=status_code)

    def calls(self, path_suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path_suffix)]

    def last_prompt(self) -> Optional[str]:
        calls = self.calls("/chat/completions")
        if not calls:
            return None
        return json.loads(calls[-1].content)["messages"][1]["content"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, queue in self.routes.items():
            if request.url.path.endswith(suffix):
                status_code, body = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(body, (dict, list)):
                    return httpx.Response(status_code, json=body)
                return httpx.Response(status_code, text=body or "")
        return httpx.Response(404, json={"error": "no route"})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DB_URL="sqlite://",
        SONAR_API_KEY="test-sonar-key",
        OPENWEATHER_API_KEY="",
        GOOGLE_MAPS_API_KEY="",
        UNSPLASH_ACCESS_KEY="",
        IMAGE_REQUEST_DELAY_SECONDS=0,
        JWT_SECRET="test-secret",
        ENABLE_RATE_LIMITING=False,
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def user() -> CurrentUser:
    return CurrentUser(id=uuid4(), email="traveller@example.com")


@pytest.fixture
def auth_headers(user, settings) -> Dict[str, str]:
    token = create_access_token(str(user.id), settings)
    return {"Authorization": f"Bearer {token}"}


def trip_fields(**overrides: Any) -> Dict[str, Any]:
    fields = {
        "title": "Goa getaway",
        "destination": "Goa",
        "start_date": date(2024, 12, 15),
        "end_date": date(2024, 12, 16),
        "budget": Decimal("30000"),
        "trip_vibe": TripVibe.RELAX,
        "number_of_people": 2,
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def make_trip(session, user):
    async def _make(owner=None, **overrides):
        owner_id = owner or user.id
        return await create_trip(session, owner_id, **trip_fields(**overrides))
    return _make


@pytest_asyncio.fixture
async def api_client(settings, session_factory, upstream):
    """ASGI client against the app with database, settings and upstream overridden"""
    from yatra.api.deps import get_http_client
    from yatra.core.rate_limit import limiter
    from yatra.core.settings import get_settings
    from yatra.db.session import get_db_session
    from yatra.main import app

    async def override_session():
        async with session_factory() as s:
            yield s

    async def override_http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            yield client

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_http_client] = override_http_client
    limiter_enabled = limiter.enabled
    limiter.enabled = False

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    limiter.enabled = limiter_enabled
    app.dependency_overrides.clear()
