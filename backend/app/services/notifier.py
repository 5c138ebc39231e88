"""
Seat change notifier: a publish/subscribe hub keyed by event id.

Watchers (WebSocket connections, or anything with `async send_json`) are
held in per-event weak sets. The hub never keeps a watcher alive, and a
watcher that is gone, or whose send fails or outlasts the send timeout, is
dropped without affecting the booking that triggered the publish. Sends run
concurrently, so publish takes at most one timeout however many watchers
stall. There is no replay: a watcher that joins late re-reads the seat map.
"""

import asyncio
import time
import weakref
from dataclasses import dataclass
from typing import Protocol

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_notification

logger = get_logger(__name__)


class Watcher(Protocol):
    async def send_json(self, data: dict) -> None: ...


@dataclass(frozen=True)
class SeatDelta:
    claimed_seat_ids: tuple[int, ...]
    available_seats: int


class SeatChangeNotifier:
    def __init__(self, send_timeout: float = 2.0):
        self.send_timeout = send_timeout
        self._watchers: dict[int, weakref.WeakSet] = {}

    def watch(self, event_id: int, watcher: Watcher) -> None:
        self._watchers.setdefault(event_id, weakref.WeakSet()).add(watcher)
        logger.info("watcher_joined", event_id=event_id, watchers=self.watcher_count(event_id))

    def unwatch(self, event_id: int, watcher: Watcher) -> None:
        watchers = self._watchers.get(event_id)
        if watchers is None:
            return
        watchers.discard(watcher)
        if not watchers:
            del self._watchers[event_id]
        logger.info("watcher_left", event_id=event_id)

    def watcher_count(self, event_id: int) -> int:
        return len(self._watchers.get(event_id, ()))

    async def publish(self, event_id: int, delta: SeatDelta) -> int:
        """Fire-and-forget broadcast. Returns how many watchers got it."""
        watchers = list(self._watchers.get(event_id, ()))
        if not watchers:
            return 0

        message = {
            "type": "seats-updated",
            "eventId": event_id,
            "bookedSeats": list(delta.claimed_seat_ids),
            "availableSeats": delta.available_seats,
            "timestamp": time.time(),
        }

        results = await asyncio.gather(
            *(asyncio.wait_for(watcher.send_json(message), self.send_timeout) for watcher in watchers),
            return_exceptions=True,
        )

        delivered = 0
        dropped = 0
        for watcher, result in zip(watchers, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "watcher_send_failed",
                    event_id=event_id,
                    error=str(result) or type(result).__name__,
                )
                self.unwatch(event_id, watcher)
                dropped += 1
            else:
                delivered += 1

        record_notification(delivered, dropped)
        logger.info(
            "seats_update_published",
            event_id=event_id,
            seats=len(delta.claimed_seat_ids),
            delivered=delivered,
            dropped=dropped,
        )
        return delivered


notifier = SeatChangeNotifier(get_settings().WATCHER_SEND_TIMEOUT_SECONDS)


def get_notifier() -> SeatChangeNotifier:
    return notifier
