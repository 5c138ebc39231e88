"""
WebSocket watch group for an event's seat changes.
Joining and leaving is all this endpoint does; deltas come from the
booking coordinator through the notifier.
"""

import json

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.services.notifier import SeatChangeNotifier, get_notifier
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Watch"])


@router.websocket("/ws/events/{event_id}")
async def watch_event(
    websocket: WebSocket,
    event_id: int,
    notifier: SeatChangeNotifier = Depends(get_notifier),
):
    await websocket.accept()
    notifier.watch(event_id, websocket)
    await websocket.send_json({"type": "connected", "eventId": event_id})

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("watcher_invalid_message", event_id=event_id)
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("watcher_disconnected", event_id=event_id)
    finally:
        notifier.unwatch(event_id, websocket)
