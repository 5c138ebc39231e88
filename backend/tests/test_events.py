"""
Tests for the read-only event endpoints.
"""

import pytest
from httpx import AsyncClient

from conftest import seed_event


@pytest.mark.asyncio
async def test_list_events(client: AsyncClient, seated_event, other_event):
    """Upcoming events, soonest first."""
    response = await client.get("/api/v1/events")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["page"] == 1
    assert data["cached"] is False
    assert [e["id"] for e in data["events"]] == [seated_event.id, other_event.id]


@pytest.mark.asyncio
async def test_list_events_skips_past_events(client: AsyncClient, db_session, seated_event):
    await seed_event(db_session, ["Z1"], title="Last Year", days_ahead=-365)

    response = await client.get("/api/v1/events")
    data = response.json()
    assert data["total"] == 1
    assert data["events"][0]["title"] == "Test Concert"


@pytest.mark.asyncio
async def test_list_events_pagination(client: AsyncClient, seated_event, other_event):
    response = await client.get("/api/v1/events?page=2&page_size=1")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert len(data["events"]) == 1
    assert data["events"][0]["id"] == other_event.id


@pytest.mark.asyncio
async def test_list_events_rejects_bad_page(client: AsyncClient):
    response = await client.get("/api/v1/events?page=0")
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "invalid_request"
    assert body["errors"][0]["loc"] == ["query", "page"]


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, seated_event):
    response = await client.get(f"/api/v1/events/{seated_event.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Test Concert"
    assert data["total_seats"] == 3
    assert data["available_seats"] == 3
    assert data["price"] == "100.00"


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    assert response.json()["error"] == "event_not_found"


@pytest.mark.asyncio
async def test_seat_map(client: AsyncClient, auth_headers, seated_event):
    await client.post(
        "/api/v1/bookings",
        json={"event_id": seated_event.id, "seat_ids": [seated_event.seats["A2"]], "total_amount": 100},
        headers=auth_headers,
    )

    response = await client.get(f"/api/v1/events/{seated_event.id}/seats")
    assert response.status_code == 200
    data = response.json()
    assert data["available_seats"] == 2
    assert [s["label"] for s in data["seats"]] == ["A1", "A2", "A3"]
    assert [s["is_booked"] for s in data["seats"]] == [False, True, False]


@pytest.mark.asyncio
async def test_seat_map_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/99999/seats")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "connected"
    assert data["cache"]["status"] == "disabled"
