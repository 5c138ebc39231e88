"""
Booking model: one confirmed purchase of one or more seats.

Key design decisions:
- `booking_reference` is the public handle printed on tickets; the UNIQUE
  constraint is the backstop behind its time+random construction
- Only `confirmed` exists: a booking row is written in the same transaction
  that claims its seats, so there is no pending state to model
- `ticket_artifact` is filled after commit and may stay NULL
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin

BOOKING_CONFIRMED = "confirmed"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    seats_booked = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    booking_reference = Column(String(32), nullable=False, unique=True, index=True)
    booking_status = Column(String(20), nullable=False, default=BOOKING_CONFIRMED)
    ticket_artifact = Column(Text, nullable=True)

    user = relationship("User", back_populates="bookings")
    event = relationship("Event", back_populates="bookings")
    seats = relationship("Seat", back_populates="booking", order_by="Seat.id")

    __table_args__ = (
        CheckConstraint("seats_booked > 0", name="check_booking_seats_positive"),
        CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint("booking_status IN ('confirmed')", name="check_booking_status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_reference}, event={self.event_id}, seats={self.seats_booked})>"
