from app.models.user import User
from app.models.event import Event
from app.models.seat import Seat
from app.models.booking import Booking, BOOKING_CONFIRMED

__all__ = ["User", "Event", "Seat", "Booking", "BOOKING_CONFIRMED"]
