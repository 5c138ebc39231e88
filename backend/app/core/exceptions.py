"""
Booking error taxonomy.

Every failure the booking core can report is a BookingError subclass carrying
its HTTP status, a stable machine-readable code and optional details (for
example the seat labels that lost a race). Routes let these propagate; the
handler registered in main renders them.
"""

from typing import Any, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logging import get_logger

logger = get_logger(__name__)


class BookingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "booking_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidRequest(BookingError):
    """Malformed or missing booking fields. Raised before storage access."""
    code = "invalid_request"


class AmountMismatch(InvalidRequest):
    code = "amount_mismatch"


class EventNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "event_not_found"


class UserNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "user_not_found"


class BookingNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "booking_not_found"


class SeatsNotFound(BookingError):
    code = "seats_not_found"

    def __init__(self, missing_seat_ids: list[int]):
        super().__init__(
            "Some seats not found",
            {"missingSeatIds": sorted(missing_seat_ids)},
        )
        self.missing_seat_ids = sorted(missing_seat_ids)


class SeatsAlreadyClaimed(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "seats_already_claimed"

    def __init__(self, seat_labels: list[str]):
        super().__init__(
            "Some seats are no longer available",
            {"bookedSeats": seat_labels},
        )
        self.seat_labels = seat_labels


class InsufficientInventory(BookingError):
    """available_seats disagrees with the seat rows. Should never happen."""
    status_code = status.HTTP_409_CONFLICT
    code = "insufficient_inventory"


class ArtifactGenerationFailed(BookingError):
    """Ticket could not be encoded. Never fails a booking."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "artifact_generation_failed"


class BookingFailed(BookingError):
    """Transient storage failure. Nothing was written; safe to retry."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "booking_failed"


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("booking_error", code=exc.code, error=exc.message, path=request.url.path)
    else:
        logger.info("booking_rejected", code=exc.code, error=exc.message, path=request.url.path)

    headers = {"Retry-After": "1"} if isinstance(exc, BookingFailed) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message, **exc.details},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters render like any other InvalidRequest."""
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return await booking_error_handler(
        request,
        InvalidRequest("Invalid request data", {"errors": errors}),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": "Internal server error"},
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
