"""
Event endpoints: Redis-cached listing, single event and live seat map.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.event import EventResponse, EventListResponse, SeatMapResponse, SeatResponse
from app.services.event_service import get_event, get_seat_map, list_events
from app.services.cache_service import get_cached_events, set_cached_events
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    Upcoming events, paginated.
    Cached in Redis; every booking invalidates the cached pages.
    """
    cached = await get_cached_events(page, page_size)
    if cached:
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await list_events(db, page, page_size)
    response = EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )
    await set_cached_events(page, page_size, response.model_dump(mode="json"))
    return response


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Single event. Not cached (needs real-time seat counts)."""
    return await get_event(db, event_id)


@router.get("/{event_id}/seats", response_model=SeatMapResponse)
async def get_seat_map_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Every seat of the event with its booked flag."""
    event, seats = await get_seat_map(db, event_id)
    return SeatMapResponse(
        event_id=event.id,
        total_seats=event.total_seats,
        available_seats=event.available_seats,
        seats=[SeatResponse.model_validate(s) for s in seats],
    )
