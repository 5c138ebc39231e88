"""
Pydantic schemas for booking-related request/response validation.

BookingCreate is deliberately lenient about seat_ids and total_amount: empty
lists, duplicates and a missing amount reach the coordinator, which rejects
them as InvalidRequest before touching storage.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    event_id: int
    seat_ids: list[int] = Field(default_factory=list)
    total_amount: Optional[Decimal] = None


class BookingResponse(BaseModel):
    booking_id: int
    booking_reference: str
    event_id: int
    seat_ids: list[int]
    seat_numbers: list[str]
    total_amount: Decimal
    available_seats: int
    ticket_artifact: Optional[str] = None


class BookingSummaryResponse(BaseModel):
    id: int
    booking_reference: str
    event_id: int
    event_title: str
    venue: str
    event_date: datetime
    seats_booked: int
    total_amount: Decimal
    booking_status: str
    created_at: datetime
    ticket_artifact: Optional[str] = None


class VerifiedBooking(BaseModel):
    id: int
    booking_reference: str
    booking_status: str
    event_id: int
    event_title: str
    venue: str
    event_date: datetime
    holder_name: str
    seats_booked: int
    total_amount: Decimal
    created_at: datetime
    seats: list[str]


class TicketVerificationResponse(BaseModel):
    valid: bool = True
    booking: VerifiedBooking
