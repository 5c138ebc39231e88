"""
Pytest fixtures for the test database, HTTP client and seeded events.

Seat locking needs real PostgreSQL. Point TEST_DATABASE_URL at one
(postgresql+asyncpg://...) or let testcontainers start a throwaway
postgres:16 container for the session. Every test gets fresh tables.
"""

import os

# Must be set before the app (and its cached settings) is imported
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.main import app
from app.db.base import Base
from app.db.session import get_db, get_session_factory
from app.core.security import create_access_token
from app.models import Booking, Event, Seat, User
from app.services.notifier import SeatChangeNotifier, get_notifier
from app.services.ticket_service import TicketGenerator, get_ticket_generator

TEST_SIGNING_KEY = "test-signing-key"


@dataclass
class SeededEvent:
    id: int
    seats: dict[str, int]  # label -> seat id
    price: Decimal


@dataclass
class LedgerState:
    available_seats: int
    total_seats: int
    booked_labels: list[str]
    booking_count: int


@pytest.fixture(scope="session")
def database_url() -> Generator[str, None, None]:
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        yield url
        return

    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
        yield postgres.get_connection_url()


@pytest_asyncio.fixture
async def session_factory(database_url: str) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema per test; yields the factory the coordinator opens sessions from."""
    engine = create_async_engine(database_url, isolation_level="READ COMMITTED", pool_size=10)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def ticket_generator() -> TicketGenerator:
    return TicketGenerator("http://tickets.test", TEST_SIGNING_KEY)


@pytest.fixture
def notifier() -> SeatChangeNotifier:
    return SeatChangeNotifier()


@pytest_asyncio.fixture
async def client(session_factory, ticket_generator, notifier) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database, generator and notifier."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_ticket_generator] = lambda: ticket_generator
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    user = User(username="testuser", email="test@example.com", full_name="Test User")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    user = User(username="otheruser", email="other@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    token = create_access_token(data={"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}


async def seed_event(
    session: AsyncSession,
    labels: list[str],
    title: str = "Test Concert",
    price: Decimal = Decimal("100.00"),
    days_ahead: int = 30,
) -> SeededEvent:
    event = Event(
        title=title,
        description="A test event",
        venue="Test Arena",
        event_date=datetime.now(timezone.utc) + timedelta(days=days_ahead),
        category="concert",
        total_seats=len(labels),
        available_seats=len(labels),
        price=price,
    )
    session.add(event)
    await session.flush()

    seats = [
        Seat(event_id=event.id, row_name=label[0], seat_number=label[1:], section="Floor")
        for label in labels
    ]
    session.add_all(seats)
    await session.commit()
    return SeededEvent(id=event.id, seats={s.label: s.id for s in seats}, price=price)


@pytest_asyncio.fixture
async def seated_event(db_session: AsyncSession) -> SeededEvent:
    """Seats A1, A2, A3, all free, 100.00 each."""
    return await seed_event(db_session, ["A1", "A2", "A3"])


@pytest_asyncio.fixture
async def other_event(db_session: AsyncSession) -> SeededEvent:
    return await seed_event(db_session, ["B1", "B2"], title="Other Show", days_ahead=60)


async def ledger_state(session_factory, event_id: int) -> LedgerState:
    """Read the ledger through a fresh session, i.e. only committed data."""
    async with session_factory() as session:
        event = await session.get(Event, event_id)
        booked = await session.execute(
            select(Seat).where(Seat.event_id == event_id, Seat.is_booked.is_(True)).order_by(Seat.id)
        )
        bookings = await session.execute(
            select(func.count(Booking.id)).where(Booking.event_id == event_id)
        )
        return LedgerState(
            available_seats=event.available_seats,
            total_seats=event.total_seats,
            booked_labels=[seat.label for seat in booked.scalars().all()],
            booking_count=bookings.scalar_one(),
        )
