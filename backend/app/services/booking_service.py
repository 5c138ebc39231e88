"""
Booking service: the seat-reservation transaction.

TRANSACTION LAYOUT
==================

  validate request            no storage access; InvalidRequest
  BEGIN (READ COMMITTED)
    SET LOCAL lock_timeout
    lock + validate seats     SeatLedger.claim_seats (always first)
    load event, user          EventNotFound / UserNotFound
    check amount              price x seats, AmountMismatch
    INSERT booking            in a SAVEPOINT, new reference on collision
    flip seats, decrement     SeatClaim.assign_to
  COMMIT                      the booking exists from here on
  generate + store ticket     best effort, never undoes the booking
  notify watchers             best effort
  invalidate listing cache    best effort

Any error before COMMIT rolls everything back. Storage errors (lock
timeout, deadlock victim, lost connection) become BookingFailed, which the
client may retry since nothing was written.

Known soft spots:
  - The booking reference is time + random suffix; the UNIQUE constraint on
    bookings.booking_reference is what actually guarantees uniqueness.
  - total_amount comes from the client; VERIFY_TOTAL_AMOUNT recomputes it
    from the event price and rejects mismatches.
"""

import asyncio
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AmountMismatch,
    ArtifactGenerationFailed,
    BookingError,
    BookingFailed,
    BookingNotFound,
    EventNotFound,
    InvalidRequest,
    SeatsAlreadyClaimed,
    InsufficientInventory,
    UserNotFound,
)
from app.core.logging import get_logger
from app.core.metrics import (
    booking_latency,
    booking_reference_collisions,
    record_booking_attempt,
    record_ticket_artifact,
    seats_claimed,
)
from app.models.booking import Booking, BOOKING_CONFIRMED
from app.models.event import Event
from app.models.seat import Seat
from app.models.user import User
from app.services.cache_service import invalidate_event_listing
from app.services.notifier import SeatChangeNotifier, SeatDelta
from app.services.seat_ledger import SeatClaim, SeatLedger
from app.services.ticket_service import BookingSummary, TicketGenerator

logger = get_logger(__name__)

CENTS = Decimal("0.01")


@dataclass
class BookingResult:
    booking_id: int
    booking_reference: str
    event_id: int
    # seat id order, the same order verify_ticket reports
    seat_ids: list[int]
    seat_numbers: list[str]
    total_amount: Decimal
    available_seats: int
    ticket_artifact: Optional[str] = None


@dataclass
class TicketVerification:
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


def generate_booking_reference() -> str:
    """BK + epoch milliseconds + 3 random digits, e.g. BK1718000000000042."""
    return f"BK{time.time_ns() // 1_000_000}{secrets.randbelow(1000):03d}"


def validate_booking_request(seat_ids: Any, total_amount: Any, max_seats: int) -> tuple[list[int], Decimal]:
    """Reject malformed requests before any storage access."""
    if not isinstance(seat_ids, (list, tuple)) or len(seat_ids) == 0:
        raise InvalidRequest("Invalid booking data: select at least one seat")
    if any(isinstance(s, bool) or not isinstance(s, int) or s <= 0 for s in seat_ids):
        raise InvalidRequest("Invalid booking data: seat ids must be positive integers")
    if len(set(seat_ids)) != len(seat_ids):
        raise InvalidRequest("Invalid booking data: duplicate seat ids")
    if len(seat_ids) > max_seats:
        raise InvalidRequest(f"Cannot book more than {max_seats} seats at once")

    if total_amount is None:
        raise InvalidRequest("Invalid booking data: total_amount is required")
    try:
        amount = Decimal(str(total_amount))
    except InvalidOperation:
        raise InvalidRequest("Invalid booking data: total_amount must be a number")
    if not amount.is_finite() or amount < 0:
        raise InvalidRequest("Invalid booking data: total_amount must be a non-negative number")

    return list(seat_ids), amount.quantize(CENTS)


def _outcome(error: BookingError) -> str:
    if isinstance(error, (SeatsAlreadyClaimed, InsufficientInventory)):
        return "conflict"
    if isinstance(error, (EventNotFound, UserNotFound)):
        return "not_found"
    if isinstance(error, BookingFailed):
        return "error"
    return "invalid"


def _is_reference_collision(error: IntegrityError) -> bool:
    return "booking_reference" in str(error.orig)


class BookingCoordinator:
    """
    Owns the booking transaction boundary. Opens its own sessions from the
    factory so the transaction is never shared with request-scoped reads.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        generator: TicketGenerator,
        notifier: SeatChangeNotifier,
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.generator = generator
        self.notifier = notifier
        self.settings = settings or get_settings()

    async def book_seats(
        self,
        user_id: int,
        event_id: int,
        seat_ids: list[int],
        total_amount: Any,
    ) -> BookingResult:
        try:
            seat_ids, amount = validate_booking_request(
                seat_ids, total_amount, self.settings.MAX_SEATS_PER_BOOKING
            )
        except InvalidRequest:
            record_booking_attempt("invalid")
            raise

        start = time.perf_counter()
        try:
            booking, claim, summary = await self._run_transaction(user_id, event_id, seat_ids, amount)
        except BookingError as e:
            record_booking_attempt(_outcome(e))
            raise
        except (SQLAlchemyError, OSError) as e:
            record_booking_attempt("error")
            logger.error(
                "booking_transaction_failed",
                user_id=user_id,
                event_id=event_id,
                seat_ids=seat_ids,
                error=str(e),
            )
            raise BookingFailed("Booking failed, please try again") from e
        finally:
            booking_latency.observe(time.perf_counter() - start)

        record_booking_attempt("success")
        seats_claimed.inc(len(claim.seats))
        logger.info(
            "booking_created",
            booking_id=booking.id,
            booking_reference=booking.booking_reference,
            user_id=user_id,
            event_id=event_id,
            seats=summary.seat_numbers,
            available_seats=claim.available_seats,
        )

        ticket = await self._attach_ticket(summary)
        await self._notify(event_id, claim.seat_ids, claim.available_seats)
        await invalidate_event_listing()

        return BookingResult(
            booking_id=booking.id,
            booking_reference=booking.booking_reference,
            event_id=event_id,
            seat_ids=claim.seat_ids,
            seat_numbers=claim.seat_labels,
            total_amount=amount,
            available_seats=claim.available_seats,
            ticket_artifact=ticket,
        )

    async def _run_transaction(
        self,
        user_id: int,
        event_id: int,
        seat_ids: list[int],
        amount: Decimal,
    ) -> tuple[Booking, SeatClaim, BookingSummary]:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    text(f"SET LOCAL lock_timeout = {int(self.settings.BOOKING_LOCK_TIMEOUT_MS)}")
                )

                claim = await SeatLedger(session).claim_seats(event_id, seat_ids)

                event = await session.get(Event, event_id)
                if event is None:
                    raise EventNotFound(f"Event {event_id} not found")
                user = await session.get(User, user_id)
                if user is None:
                    raise UserNotFound(f"User {user_id} not found")

                if self.settings.VERIFY_TOTAL_AMOUNT:
                    expected = (Decimal(event.price) * len(seat_ids)).quantize(CENTS)
                    if amount != expected:
                        raise AmountMismatch(
                            f"Total amount {amount} does not match {len(seat_ids)} x {event.price}",
                            {"expectedAmount": str(expected)},
                        )

                booking = await self._insert_booking(session, user_id, event_id, len(seat_ids), amount)
                await claim.assign_to(booking.id)

                summary = BookingSummary(
                    booking_id=booking.id,
                    booking_reference=booking.booking_reference,
                    event_title=event.title,
                    venue=event.venue,
                    event_date=event.event_date,
                    seat_numbers=tuple(claim.seat_labels),
                    total_amount=amount,
                    holder_name=user.display_name,
                )

        return booking, claim, summary

    async def _insert_booking(
        self,
        session: AsyncSession,
        user_id: int,
        event_id: int,
        seat_count: int,
        amount: Decimal,
    ) -> Booking:
        attempts = self.settings.BOOKING_REFERENCE_ATTEMPTS
        for attempt in range(1, attempts + 1):
            booking = Booking(
                user_id=user_id,
                event_id=event_id,
                seats_booked=seat_count,
                total_amount=amount,
                booking_reference=generate_booking_reference(),
                booking_status=BOOKING_CONFIRMED,
            )
            try:
                # SAVEPOINT: a collision must not release the seat locks
                async with session.begin_nested():
                    session.add(booking)
                    await session.flush()
            except IntegrityError as e:
                if not _is_reference_collision(e):
                    raise
                booking_reference_collisions.inc()
                logger.warning(
                    "booking_reference_collision",
                    booking_reference=booking.booking_reference,
                    attempt=attempt,
                )
                continue
            return booking

        raise BookingFailed("Could not allocate a unique booking reference, please try again")

    async def _attach_ticket(self, summary: BookingSummary) -> Optional[str]:
        try:
            # QR encoding is CPU bound
            artifact = await asyncio.to_thread(self.generator.generate, summary)
        except ArtifactGenerationFailed as e:
            record_ticket_artifact("failed")
            logger.warning(
                "ticket_unavailable",
                booking_id=summary.booking_id,
                booking_reference=summary.booking_reference,
                error=e.message,
            )
            return None

        record_ticket_artifact("generated")
        try:
            await store_ticket_artifact(self.session_factory, summary.booking_id, artifact)
        except (SQLAlchemyError, OSError) as e:
            record_ticket_artifact("store_failed")
            logger.error(
                "ticket_store_failed",
                booking_id=summary.booking_id,
                booking_reference=summary.booking_reference,
                error=str(e),
            )
        return artifact

    async def _notify(self, event_id: int, seat_ids: list[int], available_seats: int) -> None:
        try:
            await self.notifier.publish(
                event_id,
                SeatDelta(claimed_seat_ids=tuple(seat_ids), available_seats=available_seats),
            )
        except Exception as e:
            logger.error("seat_notification_failed", event_id=event_id, error=str(e))


async def store_ticket_artifact(
    session_factory: async_sessionmaker[AsyncSession],
    booking_id: int,
    artifact: str,
) -> None:
    async with session_factory() as session:
        async with session.begin():
            await session.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values(ticket_artifact=artifact)
            )


async def _booking_seat_labels(session: AsyncSession, booking_id: int) -> list[str]:
    result = await session.execute(
        select(Seat).where(Seat.booking_id == booking_id).order_by(Seat.id)
    )
    return [seat.label for seat in result.scalars().all()]


async def _load_booking(session: AsyncSession, reference: str) -> tuple[Booking, Event, User]:
    result = await session.execute(
        select(Booking, Event, User)
        .join(Event, Booking.event_id == Event.id)
        .join(User, Booking.user_id == User.id)
        .where(Booking.booking_reference == reference)
    )
    row = result.one_or_none()
    if row is None:
        raise BookingNotFound("Ticket not found")
    return row.Booking, row.Event, row.User


async def verify_ticket(session: AsyncSession, reference: str) -> TicketVerification:
    """Stateless lookup by booking reference, the target of a ticket's verification URL."""
    booking, event, user = await _load_booking(session, reference)
    seats = await _booking_seat_labels(session, booking.id)

    return TicketVerification(
        id=booking.id,
        booking_reference=booking.booking_reference,
        booking_status=booking.booking_status,
        event_id=event.id,
        event_title=event.title,
        venue=event.venue,
        event_date=event.event_date,
        holder_name=user.display_name,
        seats_booked=booking.seats_booked,
        total_amount=booking.total_amount,
        created_at=booking.created_at,
        seats=seats,
    )


async def get_user_bookings(session: AsyncSession, user_id: int) -> list[tuple[Booking, Event]]:
    result = await session.execute(
        select(Booking, Event)
        .join(Event, Booking.event_id == Event.id)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return [(row.Booking, row.Event) for row in result.all()]


async def regenerate_ticket(
    session_factory: async_sessionmaker[AsyncSession],
    generator: TicketGenerator,
    reference: str,
) -> str:
    """
    Rebuild and store the ticket of an already committed booking.
    Idempotent: seats and counters are never touched.
    """
    async with session_factory() as session:
        booking, event, user = await _load_booking(session, reference)
        seats = await _booking_seat_labels(session, booking.id)

    summary = BookingSummary(
        booking_id=booking.id,
        booking_reference=booking.booking_reference,
        event_title=event.title,
        venue=event.venue,
        event_date=event.event_date,
        seat_numbers=tuple(seats),
        total_amount=booking.total_amount,
        holder_name=user.display_name,
    )
    artifact = await asyncio.to_thread(generator.generate, summary)
    await store_ticket_artifact(session_factory, booking.id, artifact)
    logger.info("ticket_regenerated", booking_reference=reference)
    return artifact


async def find_bookings_without_ticket(session: AsyncSession, limit: int = 100) -> list[str]:
    result = await session.execute(
        select(Booking.booking_reference)
        .where(Booking.ticket_artifact.is_(None))
        .order_by(Booking.id)
        .limit(limit)
    )
    return list(result.scalars().all())
