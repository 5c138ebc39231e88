"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import events, bookings, watch

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(bookings.router)

# WebSocket routes live outside the versioned REST prefix
ws_router = APIRouter()
ws_router.include_router(watch.router)
