"""
Tests for request validation and error rendering. No database needed.
"""

from decimal import Decimal

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.core.exceptions import (
    BookingFailed,
    InvalidRequest,
    SeatsAlreadyClaimed,
    SeatsNotFound,
    register_exception_handlers,
)
from app.services.booking_service import generate_booking_reference, validate_booking_request


def test_validate_normalizes_amount():
    seat_ids, amount = validate_booking_request([3, 1], "199.999", max_seats=10)

    assert seat_ids == [3, 1]
    assert amount == Decimal("200.00")


@pytest.mark.parametrize(
    "seat_ids, total_amount",
    [
        (None, 100),
        ([], 100),
        ([1, "2"], 100),
        ([True], 100),
        ([-1], 100),
        ([1, 2, 1], 300),
        ([1], None),
        ([1], "abc"),
        ([1], "NaN"),
        ([1], -0.01),
    ],
)
def test_validate_rejects(seat_ids, total_amount):
    with pytest.raises(InvalidRequest):
        validate_booking_request(seat_ids, total_amount, max_seats=10)


def test_validate_seat_limit():
    validate_booking_request([1, 2], 0, max_seats=2)
    with pytest.raises(InvalidRequest, match="more than 2"):
        validate_booking_request([1, 2, 3], 0, max_seats=2)


def test_booking_reference_format():
    reference = generate_booking_reference()

    assert reference.startswith("BK")
    assert reference[2:].isdigit()
    assert len(reference) == 18


def _app_raising(exc: Exception) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise exc

    return app


async def _get(app: FastAPI):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        return await ac.get("/boom")


@pytest.mark.asyncio
async def test_conflict_rendering():
    response = await _get(_app_raising(SeatsAlreadyClaimed(["A2", "A3"])))

    assert response.status_code == 409
    assert response.json() == {
        "error": "seats_already_claimed",
        "detail": "Some seats are no longer available",
        "bookedSeats": ["A2", "A3"],
    }


@pytest.mark.asyncio
async def test_missing_seats_rendering():
    response = await _get(_app_raising(SeatsNotFound([9, 4])))

    assert response.status_code == 400
    assert response.json()["missingSeatIds"] == [4, 9]


@pytest.mark.asyncio
async def test_transient_failure_is_retryable():
    response = await _get(_app_raising(BookingFailed("Booking failed, please try again")))

    assert response.status_code == 503
    assert response.headers["retry-after"] == "1"


@pytest.mark.asyncio
async def test_unexpected_error_is_opaque():
    app = _app_raising(RuntimeError("connection string with password"))

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test"
    ) as ac:
        response = await ac.get("/boom")

    assert response.status_code == 500
    assert response.json() == {"error": "internal_error", "detail": "Internal server error"}


@pytest.mark.asyncio
async def test_malformed_body_renders_as_invalid_request():
    from app.schemas.booking import BookingCreate

    app = FastAPI()
    register_exception_handlers(app)

    @app.post("/bookings")
    async def create(booking: BookingCreate):
        return {}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        missing_event = await ac.post("/bookings", json={"seat_ids": [1], "total_amount": 10})
        bad_seat = await ac.post("/bookings", json={"event_id": 1, "seat_ids": ["x"], "total_amount": 10})

    assert missing_event.status_code == 400
    assert missing_event.json()["error"] == "invalid_request"
    assert missing_event.json()["errors"][0]["loc"] == ["body", "event_id"]
    assert bad_seat.status_code == 400
    assert bad_seat.json()["errors"][0]["loc"] == ["body", "seat_ids", "0"]
