"""
Event model with seat inventory tracking.

Key design decisions:
- `available_seats` is denormalized (avoids COUNT over seats on every listing)
  and must always equal total_seats minus the number of booked seats
- Only the seat ledger decrements it, inside the booking transaction
- CHECK constraints keep the counter inside [0, total_seats] even if a bug
  slips past the ledger
- Index on `event_date` for the upcoming-events listing
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    venue = Column(String(255), nullable=False)
    event_date = Column(DateTime(timezone=True), nullable=False)
    category = Column(String(100), nullable=True)
    image_url = Column(String(500), nullable=True)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    seats = relationship("Seat", back_populates="event", order_by="Seat.id")
    bookings = relationship("Booking", back_populates="event")

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        CheckConstraint("available_seats <= total_seats", name="check_available_lte_total"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        Index("ix_events_event_date", "event_date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_seats}/{self.total_seats})>"
