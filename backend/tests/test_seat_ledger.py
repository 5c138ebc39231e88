"""
Tests for the seat ledger: validation order, lock scope and seat map reads.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import update

from app.core.exceptions import InsufficientInventory, SeatsAlreadyClaimed, SeatsNotFound
from app.models import Booking, Event
from app.services.seat_ledger import SeatLedger

from conftest import ledger_state, seed_event


async def _open_booking(session, user_id, event_id, seat_count) -> Booking:
    booking = Booking(
        user_id=user_id,
        event_id=event_id,
        seats_booked=seat_count,
        total_amount=Decimal("100.00") * seat_count,
        booking_reference=f"BKTEST{event_id}{seat_count}",
    )
    session.add(booking)
    await session.flush()
    return booking


@pytest.mark.asyncio
async def test_claim_and_assign(session_factory, seated_event, test_user):
    """Assigned seats are booked to the booking and the counter drops."""
    async with session_factory() as session:
        async with session.begin():
            claim = await SeatLedger(session).claim_seats(
                seated_event.id, [seated_event.seats["A1"], seated_event.seats["A2"]]
            )
            assert claim.seat_labels == ["A1", "A2"]
            booking = await _open_booking(session, test_user.id, seated_event.id, 2)
            remaining = await claim.assign_to(booking.id)
            assert remaining == 1

    state = await ledger_state(session_factory, seated_event.id)
    assert state.available_seats == 1
    assert state.booked_labels == ["A1", "A2"]


@pytest.mark.asyncio
async def test_claim_unknown_seat(session_factory, seated_event):
    async with session_factory() as session:
        async with session.begin():
            with pytest.raises(SeatsNotFound) as exc_info:
                await SeatLedger(session).claim_seats(seated_event.id, [seated_event.seats["A1"], 999999])
    assert exc_info.value.missing_seat_ids == [999999]


@pytest.mark.asyncio
async def test_claim_seat_of_other_event(session_factory, seated_event, other_event):
    """A seat id that exists, but under another event, is not found."""
    async with session_factory() as session:
        async with session.begin():
            with pytest.raises(SeatsNotFound):
                await SeatLedger(session).claim_seats(
                    seated_event.id, [seated_event.seats["A1"], other_event.seats["B1"]]
                )


@pytest.mark.asyncio
async def test_not_found_wins_over_already_claimed(session_factory, seated_event, test_user):
    async with session_factory() as session:
        async with session.begin():
            claim = await SeatLedger(session).claim_seats(seated_event.id, [seated_event.seats["A1"]])
            booking = await _open_booking(session, test_user.id, seated_event.id, 1)
            await claim.assign_to(booking.id)

    async with session_factory() as session:
        async with session.begin():
            with pytest.raises(SeatsNotFound):
                await SeatLedger(session).claim_seats(seated_event.id, [seated_event.seats["A1"], 424242])


@pytest.mark.asyncio
async def test_claimed_seats_reported_by_label(session_factory, seated_event, test_user):
    async with session_factory() as session:
        async with session.begin():
            claim = await SeatLedger(session).claim_seats(seated_event.id, [seated_event.seats["A2"]])
            booking = await _open_booking(session, test_user.id, seated_event.id, 1)
            await claim.assign_to(booking.id)

    async with session_factory() as session:
        async with session.begin():
            with pytest.raises(SeatsAlreadyClaimed) as exc_info:
                await SeatLedger(session).claim_seats(
                    seated_event.id, [seated_event.seats["A2"], seated_event.seats["A3"]]
                )
    assert exc_info.value.seat_labels == ["A2"]


@pytest.mark.asyncio
async def test_counter_drift_is_rejected(session_factory, seated_event):
    """A counter lower than the free seat rows fails the claim."""
    async with session_factory() as session:
        async with session.begin():
            await session.execute(
                update(Event).where(Event.id == seated_event.id).values(available_seats=1)
            )

    async with session_factory() as session:
        async with session.begin():
            with pytest.raises(InsufficientInventory):
                await SeatLedger(session).claim_seats(
                    seated_event.id, [seated_event.seats["A1"], seated_event.seats["A2"]]
                )


@pytest.mark.asyncio
async def test_overlapping_claim_waits_for_lock(session_factory, seated_event, test_user):
    """A claim on a seat locked by an open transaction blocks until it ends."""
    holder = session_factory()
    await holder.begin()
    claim = await SeatLedger(holder).claim_seats(seated_event.id, [seated_event.seats["A2"]])

    async def contender():
        async with session_factory() as session:
            async with session.begin():
                await SeatLedger(session).claim_seats(
                    seated_event.id, [seated_event.seats["A2"], seated_event.seats["A3"]]
                )

    task = asyncio.create_task(contender())
    await asyncio.sleep(0.3)
    assert not task.done()

    booking = await _open_booking(holder, test_user.id, seated_event.id, 1)
    await claim.assign_to(booking.id)
    await holder.commit()
    await holder.close()

    with pytest.raises(SeatsAlreadyClaimed) as exc_info:
        await asyncio.wait_for(task, timeout=5)
    assert exc_info.value.seat_labels == ["A2"]


@pytest.mark.asyncio
async def test_disjoint_claim_does_not_wait(session_factory, seated_event):
    holder = session_factory()
    await holder.begin()
    await SeatLedger(holder).claim_seats(seated_event.id, [seated_event.seats["A1"]])

    try:
        async with session_factory() as session:
            async with session.begin():
                claim = await asyncio.wait_for(
                    SeatLedger(session).claim_seats(seated_event.id, [seated_event.seats["A3"]]),
                    timeout=2,
                )
        assert claim.seat_labels == ["A3"]
    finally:
        await holder.rollback()
        await holder.close()


@pytest.mark.asyncio
async def test_seat_map_orders_numerically(db_session, session_factory):
    event = await seed_event(db_session, ["B10", "A2", "B2", "A1", "B1"], title="Ordering")

    async with session_factory() as session:
        seats = await SeatLedger(session).seat_map(event.id)

    assert [s.label for s in seats] == ["A1", "A2", "B1", "B2", "B10"]
