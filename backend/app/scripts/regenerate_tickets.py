"""
Operator job: fill in tickets for bookings whose post-commit ticket
generation failed.

Usage:
    python -m app.scripts.regenerate_tickets              # all missing tickets
    python -m app.scripts.regenerate_tickets BK1718...    # specific references

Only bookings.ticket_artifact is written; seats and counters are never
touched, so the job is safe to rerun.
"""

import asyncio
import sys

from app.core.exceptions import BookingError
from app.core.logging import setup_logging, get_logger
from app.db.session import AsyncSessionLocal, dispose_engine
from app.services.booking_service import find_bookings_without_ticket, regenerate_ticket
from app.services.ticket_service import get_ticket_generator

logger = get_logger(__name__)


async def regenerate(references: list[str]) -> tuple[int, int]:
    generator = get_ticket_generator()

    if not references:
        async with AsyncSessionLocal() as session:
            references = await find_bookings_without_ticket(session, limit=1000)

    done = failed = 0
    for reference in references:
        try:
            await regenerate_ticket(AsyncSessionLocal, generator, reference)
            done += 1
        except BookingError as e:
            logger.error("ticket_regeneration_failed", booking_reference=reference, error=e.message)
            failed += 1

    logger.info("ticket_regeneration_finished", regenerated=done, failed=failed)
    return done, failed


async def main(references: list[str]) -> int:
    setup_logging()
    try:
        _, failed = await regenerate(references)
    finally:
        await dispose_engine()
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
