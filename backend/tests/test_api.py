import json
from uuid import uuid4

import pytest

from conftest import sample_itinerary
from yatra.core.quota import utc_today
from yatra.core.security import create_access_token
from yatra.db.models import ApiUsage

TRIP_FORM = {
    "title": "Goa getaway",
    "destination": "Goa",
    "startDate": "2024-12-15",
    "endDate": "2024-12-16",
    "arrivalTime": "",
    "budget": 30000,
    "tripVibe": "Relax",
    "numberOfPeople": 4,
    "hotelName": "",
    "hotelAddress": "",
}


def generate_body(trip):
    body = {k: v for k, v in TRIP_FORM.items() if k != "title"}
    body["tripId"] = trip["id"]
    return body


async def create_trip(api_client, auth_headers, **overrides):
    response = await api_client.post("/api/v1/trips", json={**TRIP_FORM, **overrides}, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
class TestTripsApi:

    async def test_create_trip_accepts_form_keys(self, api_client, auth_headers, user):
        trip = await create_trip(api_client, auth_headers)
        assert trip["user_id"] == str(user.id)
        assert trip["status"] == "draft"
        assert trip["number_of_people"] == 4
        assert trip["arrival_time"] is None
        assert trip["duration_days"] == 2

    async def test_end_before_start_rejected(self, api_client, auth_headers):
        response = await api_client.post(
            "/api/v1/trips", json={**TRIP_FORM, "endDate": "2024-12-01"}, headers=auth_headers
        )
        assert response.status_code == 422

    async def test_list_only_own_trips(self, api_client, auth_headers, settings):
        await create_trip(api_client, auth_headers, title="Mine")
        other = {"Authorization": f"Bearer {create_access_token(str(uuid4()), settings)}"}
        await create_trip(api_client, other, title="Theirs")

        response = await api_client.get("/api/v1/trips", headers=auth_headers)
        assert [t["title"] for t in response.json()] == ["Mine"]

    async def test_detail_of_other_users_trip_forbidden(self, api_client, auth_headers, settings):
        trip = await create_trip(api_client, auth_headers)
        other = {"Authorization": f"Bearer {create_access_token(str(uuid4()), settings)}"}
        response = await api_client.get(f"/api/v1/trips/{trip['id']}", headers=other)
        assert response.status_code == 403

    async def test_unknown_trip_not_found(self, api_client, auth_headers):
        response = await api_client.get(f"/api/v1/trips/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404


@pytest.mark.asyncio
class TestGenerateApi:

    async def test_missing_token_unauthorized(self, api_client):
        response = await api_client.post("/api/v1/itineraries/generate", json={})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized", "code": "unauthorized"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_garbage_token_unauthorized(self, api_client):
        response = await api_client.get(
            "/api/v1/itineraries/usage", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    async def test_generate_then_read_trip_detail(self, api_client, auth_headers, upstream):
        trip = await create_trip(api_client, auth_headers)
        upstream.completion("```json\n" + json.dumps(sample_itinerary(days=2)) + "\n```")

        response = await api_client.post(
            "/api/v1/itineraries/generate", json=generate_body(trip), headers=auth_headers
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["success"] is True
        assert body["usage"] == 1
        assert len(body["itinerary"]["days"]) == 2

        detail = (await api_client.get(f"/api/v1/trips/{trip['id']}", headers=auth_headers)).json()
        assert detail["trip"]["status"] == "generated"
        assert [d["day_number"] for d in detail["days"]] == [1, 2]
        summary = detail["cost_summary"]
        # per day for 4 people: activities 3200, attraction 200, food 800
        assert summary["days"][0]["total_group"] == 4200
        assert summary["total_for_group"] == 8400
        assert summary["per_person"] == 2100
        assert summary["budget_used_percent"] == 28

    async def test_daily_limit_reached(self, api_client, auth_headers, user, session, upstream):
        trip = await create_trip(api_client, auth_headers)
        session.add(ApiUsage(user_id=user.id, usage_date=utc_today(), request_count=5))
        await session.commit()
        upstream.completion(json.dumps(sample_itinerary()))

        response = await api_client.post(
            "/api/v1/itineraries/generate", json=generate_body(trip), headers=auth_headers
        )

        assert response.status_code == 429
        assert response.json() == {
            "error": "Daily API limit reached (5 requests per day)",
            "code": "rate_limited",
        }
        assert upstream.calls("/chat/completions") == []

    async def test_unparseable_reply_is_bad_gateway(self, api_client, auth_headers, upstream):
        trip = await create_trip(api_client, auth_headers)
        upstream.completion("No itinerary today.")

        response = await api_client.post(
            "/api/v1/itineraries/generate", json=generate_body(trip), headers=auth_headers
        )

        assert response.status_code == 502
        assert response.json()["code"] == "parse_failure"
        detail = (await api_client.get(f"/api/v1/trips/{trip['id']}", headers=auth_headers)).json()
        assert detail["days"] == []
        assert detail["trip"]["status"] == "draft"

    async def test_upstream_down_is_service_unavailable(self, api_client, auth_headers, upstream):
        trip = await create_trip(api_client, auth_headers)
        upstream.route("/chat/completions", "upstream exploded", status_code=500)

        response = await api_client.post(
            "/api/v1/itineraries/generate", json=generate_body(trip), headers=auth_headers
        )

        assert response.status_code == 503
        assert response.json() == {"error": "AI service temporarily unavailable", "code": "upstream_unavailable"}

    async def test_regenerate_uses_stored_trip(self, api_client, auth_headers, upstream):
        trip = await create_trip(api_client, auth_headers)
        upstream.completion(json.dumps(sample_itinerary(days=2, prefix="First")))
        await api_client.post(f"/api/v1/trips/{trip['id']}/regenerate", headers=auth_headers)
        upstream.completion(json.dumps(sample_itinerary(days=2, prefix="Second")))
        response = await api_client.post(f"/api/v1/trips/{trip['id']}/regenerate", headers=auth_headers)

        assert response.status_code == 200, response.text
        assert response.json()["usage"] == 2
        assert "for 4 people visiting Goa" in upstream.last_prompt()
        detail = (await api_client.get(f"/api/v1/trips/{trip['id']}", headers=auth_headers)).json()
        assert len(detail["days"]) == 2
        assert all(d["activities"][0]["title"].startswith("Second") for d in detail["days"])

    async def test_usage_reports_remaining(self, api_client, auth_headers, user, session):
        session.add(ApiUsage(user_id=user.id, usage_date=utc_today(), request_count=2))
        await session.commit()

        response = await api_client.get("/api/v1/itineraries/usage", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "usage_date": utc_today().isoformat(),
            "request_count": 2,
            "daily_limit": 5,
            "remaining": 3,
        }


@pytest.mark.asyncio
async def test_root_and_request_id(api_client):
    response = await api_client.get("/", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.json()["status"] == "API active"
    assert response.headers["X-Request-ID"] == "req-123"
