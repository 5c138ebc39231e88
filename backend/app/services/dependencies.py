"""
FastAPI dependency providers for the booking services.
Tests override get_session_factory, get_ticket_generator and get_notifier.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.session import get_session_factory
from app.services.booking_service import BookingCoordinator
from app.services.notifier import SeatChangeNotifier, get_notifier
from app.services.ticket_service import TicketGenerator, get_ticket_generator


def get_booking_coordinator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    generator: TicketGenerator = Depends(get_ticket_generator),
    notifier: SeatChangeNotifier = Depends(get_notifier),
) -> BookingCoordinator:
    return BookingCoordinator(session_factory, generator, notifier)
