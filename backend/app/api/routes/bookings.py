"""
Booking endpoints: seat reservation, the caller's bookings and the public
ticket verification lookup.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingSummaryResponse,
    TicketVerificationResponse,
    VerifiedBooking,
)
from app.services.booking_service import BookingCoordinator, get_user_bookings, verify_ticket
from app.services.dependencies import get_booking_coordinator
from app.core.security import get_current_user_id

router = APIRouter(tags=["Bookings"])


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator),
):
    """
    Reserve specific seats for an event.

    Seats are row-locked for the duration of the transaction, so two
    overlapping requests can never both succeed: the loser gets a 409 that
    lists the seats it lost. The response's `ticket_artifact` is null when
    the ticket could not be generated; the booking is confirmed regardless.
    """
    result = await coordinator.book_seats(
        user_id=user_id,
        event_id=booking_data.event_id,
        seat_ids=booking_data.seat_ids,
        total_amount=booking_data.total_amount,
    )
    return BookingResponse(
        booking_id=result.booking_id,
        booking_reference=result.booking_reference,
        event_id=result.event_id,
        seat_ids=result.seat_ids,
        seat_numbers=result.seat_numbers,
        total_amount=result.total_amount,
        available_seats=result.available_seats,
        ticket_artifact=result.ticket_artifact,
    )


@router.get("/bookings", response_model=list[BookingSummaryResponse])
async def list_user_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user, newest first."""
    rows = await get_user_bookings(db, user_id)
    return [
        BookingSummaryResponse(
            id=booking.id,
            booking_reference=booking.booking_reference,
            event_id=event.id,
            event_title=event.title,
            venue=event.venue,
            event_date=event.event_date,
            seats_booked=booking.seats_booked,
            total_amount=booking.total_amount,
            booking_status=booking.booking_status,
            created_at=booking.created_at,
            ticket_artifact=booking.ticket_artifact,
        )
        for booking, event in rows
    ]


@router.get("/verify-ticket/{reference}", response_model=TicketVerificationResponse)
async def verify_ticket_endpoint(reference: str, db: AsyncSession = Depends(get_db)):
    """Public lookup behind the verification URL embedded in every ticket."""
    verification = await verify_ticket(db, reference)
    return TicketVerificationResponse(
        valid=True,
        booking=VerifiedBooking.model_validate(verification, from_attributes=True),
    )
