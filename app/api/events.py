# app/api/events.py
#
# Server-Sent Events: one "store-changed" event per committed write.
# The event carries no data; dashboards re-fetch what they show.
# A comment line goes out every sse_heartbeat_seconds of silence, which is
# also when a vanished client gets noticed and its subscription dropped.

import logging

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from app.api.dependencies import NotifierDep
from app.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

READY_EVENT = "event: ready\ndata: {}\n\n"
CHANGED_EVENT = "event: store-changed\ndata: {}\n\n"
KEEP_ALIVE = ": keep-alive\n\n"


async def event_stream(request: Request, notifier, heartbeat: float):
    # First event tells the client the subscription is live
    yield READY_EVENT
    async for changed in notifier.stream(heartbeat=heartbeat):
        if await request.is_disconnected():
            logger.debug("🔌 /events client disconnected")
            break
        yield CHANGED_EVENT if changed else KEEP_ALIVE


@router.get("/events")
async def store_events(request: Request, notifier: NotifierDep):
    return StreamingResponse(
        event_stream(request, notifier, settings.sse_heartbeat_seconds),
        media_type="text/event-stream",
    )
