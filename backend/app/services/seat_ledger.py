"""
Seat ledger: the only code that changes seat ownership or the
available_seats counter.

CONCURRENCY STRATEGY: Pessimistic row locks on the requested seats
==================================================================

Problem:
  Two users pick overlapping seats at the same moment. Both read the seats
  as free, both flip them, the same seat ends up on two tickets.

Solution:
  SELECT ... FROM seats WHERE id IN (:ids) AND event_id = :event
  ORDER BY id FOR UPDATE

  - Only the requested rows are locked, so buyers of disjoint seats for
    the same event never wait on each other's seat locks.
  - Rows are locked in id order; two claims over overlapping sets acquire
    their common rows in the same order and cannot deadlock on them.
  - Under READ COMMITTED the loser wakes up after the winner commits and
    re-reads the locked rows, now with is_booked = true, and fails (b).

  The counter is decremented with a guarded UPDATE as the last write of the
  transaction so the event row lock is held as briefly as possible:

  UPDATE events SET available_seats = available_seats - :n
  WHERE id = :event AND available_seats >= :n RETURNING available_seats

  The CHECK constraints on events are the final safety net.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import EventNotFound, InsufficientInventory, SeatsAlreadyClaimed, SeatsNotFound
from app.core.logging import get_logger
from app.models.event import Event
from app.models.seat import Seat

logger = get_logger(__name__)


@dataclass
class SeatClaim:
    """Seats locked and validated for one booking, not yet assigned."""

    session: AsyncSession
    event_id: int
    seats: list[Seat]
    booking_id: Optional[int] = None
    available_seats: Optional[int] = None

    @property
    def seat_ids(self) -> list[int]:
        return [seat.id for seat in self.seats]

    @property
    def seat_labels(self) -> list[str]:
        return [seat.label for seat in self.seats]

    async def assign_to(self, booking_id: int) -> int:
        """
        Flip the locked seats to the booking and decrement the counter.
        Returns the event's new available_seats. Visible only after commit.
        """
        if self.booking_id is not None:
            raise RuntimeError(f"Claim already assigned to booking {self.booking_id}")

        count = len(self.seats)
        for seat in self.seats:
            seat.is_booked = True
            seat.booking_id = booking_id
        await self.session.flush()

        result = await self.session.execute(
            update(Event)
            .where(Event.id == self.event_id, Event.available_seats >= count)
            .values(available_seats=Event.available_seats - count)
            .returning(Event.available_seats)
        )
        remaining = result.scalar_one_or_none()
        if remaining is None:
            logger.error(
                "inventory_counter_drift",
                event_id=self.event_id,
                requested=count,
                booking_id=booking_id,
            )
            raise InsufficientInventory("Not enough seats available")

        self.booking_id = booking_id
        self.available_seats = remaining
        return remaining


class SeatLedger:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def claim_seats(self, event_id: int, seat_ids: list[int]) -> SeatClaim:
        """
        Lock the requested seats and validate them, first failure wins:
        (a) all exist under event_id, (b) none booked, (c) counter covers them.

        Must run inside the caller's transaction; on any error the caller
        rolls the whole transaction back.
        """
        result = await self.session.execute(
            select(Seat)
            .where(Seat.id.in_(seat_ids), Seat.event_id == event_id)
            .order_by(Seat.id)
            .with_for_update()
        )
        seats = list(result.scalars().all())

        if len(seats) != len(seat_ids):
            missing = set(seat_ids) - {seat.id for seat in seats}
            logger.info("seats_not_found", event_id=event_id, missing=sorted(missing))
            raise SeatsNotFound(list(missing))

        booked = [seat for seat in seats if seat.is_booked]
        if booked:
            labels = [seat.label for seat in booked]
            logger.info("seats_already_claimed", event_id=event_id, seats=labels)
            raise SeatsAlreadyClaimed(labels)

        available = (
            await self.session.execute(
                select(Event.available_seats).where(Event.id == event_id)
            )
        ).scalar_one_or_none()
        if available is None:
            raise EventNotFound(f"Event {event_id} not found")
        if available < len(seats):
            logger.error(
                "inventory_counter_drift",
                event_id=event_id,
                requested=len(seats),
                available=available,
            )
            raise InsufficientInventory(
                f"Not enough seats. Requested: {len(seats)}, Available: {available}"
            )

        return SeatClaim(session=self.session, event_id=event_id, seats=seats)

    async def seat_map(self, event_id: int) -> list[Seat]:
        """All seats of an event, ordered by row then numeric seat number."""
        result = await self.session.execute(
            select(Seat)
            .where(Seat.event_id == event_id)
            .order_by(Seat.row_name, func.length(Seat.seat_number), Seat.seat_number)
        )
        return list(result.scalars().all())
