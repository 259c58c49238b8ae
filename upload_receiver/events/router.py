"""Server-sent events endpoint.

GET /events opens a long-lived ``text/event-stream``. The first message is
``data: connected``; each later change to the store produces
``data: refresh``. A ``: keep-alive`` comment is sent after every quiet
heartbeat interval, which is also when a vanished client is noticed.
"""
import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .notifier import ChangeNotifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

KEEP_ALIVE = ": keep-alive\n\n"


def format_event(message: str) -> str:
    """Frame *message* as a single SSE ``data`` event."""
    return f"data: {message}\n\n"


async def event_stream(
    request: Request,
    notifier: ChangeNotifier,
    heartbeat_seconds: float,
) -> AsyncIterator[str]:
    """Yield SSE frames for one connection until it goes away.

    The subscriber is registered when iteration starts and removed when the
    generator finishes for any reason, including cancellation by the server
    on client disconnect.
    """
    with notifier.subscribe() as subscriber:
        while True:
            try:
                message = await asyncio.wait_for(subscriber.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    logger.debug("Event stream client disconnected")
                    break
                yield KEEP_ALIVE
                continue

            if message is None:
                break
            yield format_event(message)


@router.get("/events")
async def stream_events(request: Request) -> StreamingResponse:
    """Open a live refresh stream for the listing page."""
    state = request.app.state
    return StreamingResponse(
        event_stream(request, state.notifier, state.config.events.heartbeat_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
