"""
Notification API Routes

Provides:
- GET /api/v1/notifications/stream - Server-Sent Events stream of new notifications
"""

import asyncio
import json
from collections.abc import AsyncIterator
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from engagement.api.dependencies import get_current_user_id, get_stream_hub
from engagement.config import settings
from engagement.notifications.stream_hub import SseConnection, StreamHub, format_sse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


async def event_stream(
    hub: StreamHub,
    user_id: UUID,
    connection: SseConnection,
    keepalive_seconds: float,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one open stream.

    Registers ``connection`` with the hub, emits a ``connected`` frame, then
    relays broadcast frames, falling back to a ``keepalive`` frame whenever
    the stream stays idle for ``keepalive_seconds``. The connection is
    unregistered when the client goes away.
    """
    hub.register(user_id, connection)
    logger.info("notification_stream_opened", user_id=str(user_id))

    try:
        yield format_sse("connected", json.dumps({"user_id": str(user_id)}))

        while True:
            try:
                frame = await asyncio.wait_for(connection.next_frame(), timeout=keepalive_seconds)
            except TimeoutError:
                frame = format_sse("keepalive", "{}")
            yield frame
    finally:
        hub.unregister(user_id, connection)
        logger.info("notification_stream_closed", user_id=str(user_id))


@router.get("/stream")
async def stream_notifications(
    user_id: UUID = Depends(get_current_user_id),
    hub: StreamHub = Depends(get_stream_hub),
) -> StreamingResponse:
    """Open a real-time notification stream for the caller."""
    connection = SseConnection(max_queue_size=settings.stream_queue_size)

    return StreamingResponse(
        event_stream(hub, user_id, connection, settings.stream_keepalive_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
