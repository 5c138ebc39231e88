from app.schemas.event import EventResponse, EventListResponse, SeatResponse, SeatMapResponse
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingSummaryResponse,
    TicketVerificationResponse,
    VerifiedBooking,
)

__all__ = [
    "EventResponse", "EventListResponse", "SeatResponse", "SeatMapResponse",
    "BookingCreate", "BookingResponse", "BookingSummaryResponse",
    "TicketVerificationResponse", "VerifiedBooking",
]
