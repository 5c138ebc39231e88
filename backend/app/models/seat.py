"""
Seat model - the rows the seat ledger locks.

A seat goes from free to booked exactly once: `is_booked` and `booking_id`
are set together in the booking transaction and never cleared.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class Seat(Base):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    row_name = Column(String(10), nullable=False)
    seat_number = Column(String(10), nullable=False)
    section = Column(String(50), nullable=False, default="General")
    is_booked = Column(Boolean, nullable=False, default=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)

    event = relationship("Event", back_populates="seats")
    booking = relationship("Booking", back_populates="seats")

    __table_args__ = (
        UniqueConstraint("event_id", "section", "row_name", "seat_number", name="uq_event_seat_location"),
        CheckConstraint(
            "(is_booked AND booking_id IS NOT NULL) OR (NOT is_booked AND booking_id IS NULL)",
            name="check_seat_booking_consistent",
        ),
    )

    @property
    def label(self) -> str:
        """Human-readable label, e.g. A12."""
        return f"{self.row_name}{self.seat_number}"

    def __repr__(self) -> str:
        return f"<Seat(id={self.id}, event={self.event_id}, label={self.label}, booked={self.is_booked})>"
