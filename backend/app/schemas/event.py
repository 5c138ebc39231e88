"""
Pydantic schemas for event and seat-map responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    venue: str
    event_date: datetime
    category: Optional[str]
    image_url: Optional[str]
    total_seats: int
    available_seats: int
    price: Decimal

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class SeatResponse(BaseModel):
    id: int
    row_name: str
    seat_number: str
    section: str
    is_booked: bool
    label: str

    model_config = {"from_attributes": True}


class SeatMapResponse(BaseModel):
    event_id: int
    total_seats: int
    available_seats: int
    seats: list[SeatResponse]
