"""
Stream Hub for real-time (Server-Sent Events) delivery.

Keeps an in-memory registry of open connections grouped by user and
broadcasts events to every connection a user currently has open. Most
dispatch targets have no open connection, in which case a broadcast is a
silent no-op.

The registry is the only shared mutable state of the engine. A single lock
guards the map; broadcasts copy the user's connection set under the lock and
write outside it, so a connection removed mid-broadcast is harmless.
"""

import asyncio
import json
import threading
from collections import defaultdict
from typing import Any, Protocol
from uuid import UUID

import structlog

from engagement.notifications.exceptions import ChannelDeliveryFailure

logger = structlog.get_logger(__name__)


def format_sse(event_name: str, data: str) -> str:
    """Build one SSE frame. ``data`` must already be serialized."""
    return f"event: {event_name}\ndata: {data}\n\n"


class Connection(Protocol):
    """An open real-time channel bound to one user."""

    def send(self, frame: str) -> None:
        """Write a frame without blocking; raise on failure."""
        ...


class SseConnection:
    """
    Bounded in-memory buffer between the hub and one SSE response.

    The hub writes with :meth:`send` (non-blocking); the response generator
    drains frames with :meth:`next_frame`.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue_size)

    def send(self, frame: str) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull as e:
            raise ChannelDeliveryFailure("stream buffer full") from e

    async def next_frame(self) -> str:
        return await self._queue.get()

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class StreamHub:
    """
    Registry of open real-time connections keyed by user id.

    Methods:
    --------
    - register(user_id, connection): Track an opened connection
    - unregister(user_id, connection): Forget a closed connection
    - broadcast(user_id, event_name, payload): Write one event to all of a user's connections
    """

    def __init__(self) -> None:
        self._connections: defaultdict[UUID, set[Connection]] = defaultdict(set)
        self._lock = threading.Lock()

    def register(self, user_id: UUID, connection: Connection) -> None:
        """Add ``connection`` to the set for ``user_id``."""
        with self._lock:
            self._connections[user_id].add(connection)
            count = len(self._connections[user_id])

        logger.debug("stream_connection_registered", user_id=str(user_id), connections=count)

    def unregister(self, user_id: UUID, connection: Connection) -> None:
        """Remove ``connection``; drop the user's key once no connection is left."""
        with self._lock:
            connections = self._connections.get(user_id)
            if connections is None:
                return
            connections.discard(connection)
            if not connections:
                del self._connections[user_id]

        logger.debug("stream_connection_unregistered", user_id=str(user_id))

    def broadcast(self, user_id: UUID, event_name: str, payload: Any) -> int:
        """
        Send an event to every open connection of ``user_id``.

        Failures on one connection are logged and do not affect the others
        or the caller.

        Args:
            user_id: Target user
            event_name: SSE event name
            payload: JSON-serializable payload (serialized once)

        Returns:
            Number of connections the frame was written to
        """
        with self._lock:
            # .get() so that a miss does not create an entry in the defaultdict
            connections = list(self._connections.get(user_id, ()))

        if not connections:
            return 0

        frame = format_sse(event_name, json.dumps(payload, default=str, ensure_ascii=False))

        delivered = 0
        for connection in connections:
            try:
                connection.send(frame)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "stream_write_failed",
                    user_id=str(user_id),
                    event=event_name,
                    error=str(e),
                )

        return delivered

    def connection_count(self, user_id: UUID) -> int:
        with self._lock:
            return len(self._connections.get(user_id, ()))

    def active_users(self) -> list[UUID]:
        with self._lock:
            return list(self._connections.keys())
