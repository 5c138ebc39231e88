"""
Seed a development or load-test database with users and seated events.

Usage:
    python -m app.scripts.seed_data
    python -m app.scripts.seed_data --users 100

Existing rows (matched by username, or by title + date for events) are
left alone, so the script can be rerun.
"""

import argparse
import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import setup_logging, get_logger
from app.db.session import AsyncSessionLocal, dispose_engine
from app.models import Event, Seat, User

logger = get_logger(__name__)

SAMPLE_EVENTS = [
    {
        "title": "Summer Jazz Night",
        "description": "An evening of live jazz under the stars.",
        "venue": "Riverside Amphitheatre",
        "days_ahead": 14,
        "category": "concert",
        "price": Decimal("45.00"),
        "rows": "ABCDEFGH",
        "seats_per_row": 12,
    },
    {
        "title": "City Derby",
        "description": "Local rivals meet for the season finale.",
        "venue": "Municipal Stadium",
        "days_ahead": 30,
        "category": "sports",
        "price": Decimal("60.00"),
        "rows": "ABCDEFGHJK",
        "seats_per_row": 20,
    },
    {
        "title": "Load Test Arena",
        "description": "Ten seats, many buyers.",
        "venue": "Test Hall",
        "days_ahead": 60,
        "category": "test",
        "price": Decimal("10.00"),
        "rows": "A",
        "seats_per_row": 10,
    },
]


async def create_users(db: AsyncSession, count: int) -> list[User]:
    users = []
    for i in range(1, count + 1):
        username = f"user{i:04d}"
        existing = (
            await db.execute(select(User).where(User.username == username))
        ).scalar_one_or_none()
        if existing:
            users.append(existing)
            continue

        user = User(username=username, email=f"{username}@example.com", full_name=f"Demo User {i}")
        db.add(user)
        users.append(user)

    await db.commit()
    return users


async def create_event(db: AsyncSession, data: dict) -> Event:
    event_date = (datetime.now(timezone.utc) + timedelta(days=data["days_ahead"])).replace(
        hour=20, minute=0, second=0, microsecond=0
    )
    existing = (
        await db.execute(
            select(Event).where(Event.title == data["title"], Event.event_date == event_date)
        )
    ).scalar_one_or_none()
    if existing:
        logger.info("seed_event_exists", event_id=existing.id, title=existing.title)
        return existing

    seat_count = len(data["rows"]) * data["seats_per_row"]
    event = Event(
        title=data["title"],
        description=data["description"],
        venue=data["venue"],
        event_date=event_date,
        category=data["category"],
        total_seats=seat_count,
        available_seats=seat_count,
        price=data["price"],
    )
    db.add(event)
    await db.flush()

    for row in data["rows"]:
        section = "Front" if row in "ABC" else "Rear"
        for number in range(1, data["seats_per_row"] + 1):
            db.add(Seat(event_id=event.id, row_name=row, seat_number=str(number), section=section))

    await db.commit()
    logger.info("seed_event_created", event_id=event.id, title=event.title, seats=seat_count)
    return event


async def main(user_count: int) -> None:
    setup_logging()
    try:
        async with AsyncSessionLocal() as db:
            users = await create_users(db, user_count)
            events = [await create_event(db, data) for data in SAMPLE_EVENTS]
    finally:
        await dispose_engine()

    logger.info(
        "seed_finished",
        users=len(users),
        user_ids=f"{users[0].id}-{users[-1].id}" if users else "",
        event_ids=[event.id for event in events],
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed users and seated events")
    parser.add_argument("--users", type=int, default=50)
    args = parser.parse_args()
    asyncio.run(main(args.users))
