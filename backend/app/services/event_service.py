"""
Read-only event queries. Events and their seats are created by the admin
tooling; this API only lists them and serves seat maps.
"""

from datetime import datetime, timezone
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import EventNotFound
from app.models.event import Event
from app.models.seat import Seat
from app.services.seat_ledger import SeatLedger


async def get_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise EventNotFound(f"Event {event_id} not found")
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Event], int]:
    """
    Upcoming events, soonest first, paginated.
    Uses the ix_events_event_date index for the date filter and ordering.
    """
    query = select(Event).where(Event.event_date > datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .order_by(Event.event_date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def get_seat_map(db: AsyncSession, event_id: int) -> tuple[Event, list[Seat]]:
    event = await get_event(db, event_id)
    seats = await SeatLedger(db).seat_map(event_id)
    return event, seats
