"""Live-reload event and subscriber types."""

import asyncio
import logging
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Pending reloads beyond this are redundant; the browser reloads once anyway.
DEFAULT_MAX_PENDING = 16


class ConnectionClosedError(Exception):
    """Raised when pushing to a connection that has already closed."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is closed")


class ReloadEvent(BaseModel):
    """A "something changed" signal.

    The id and timestamp exist for diagnostics; clients only care that an
    event arrived.
    """

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_json(self) -> dict:
        """Convert to the client-visible message."""
        return {"type": "reload", "id": self.id}


class ClientConnection:
    """One live-reload subscriber.

    Pushes are non-blocking and land in a bounded queue that the connection's
    send task drains with :meth:`next_event`.
    """

    def __init__(self, connection_id: str | None = None, max_pending: int = DEFAULT_MAX_PENDING):
        self.id = connection_id or f"ws-{uuid4().hex[:8]}"
        self._queue: asyncio.Queue[ReloadEvent] = asyncio.Queue(maxsize=max_pending)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def pending(self) -> int:
        """Number of pushed events not yet taken by the send task."""
        return self._queue.qsize()

    def push(self, event: ReloadEvent) -> None:
        """Queue an event for delivery.

        Raises:
            ConnectionClosedError: If the connection has been closed.
        """
        if self.closed:
            raise ConnectionClosedError(self.id)
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.debug(f"Coalescing reload {event.id} for {self.id}, {self.pending} already pending")

    async def next_event(self) -> ReloadEvent | None:
        """Wait for the next pushed event.

        Returns None once the connection is closed and nothing is pending.
        """
        if not self._queue.empty():
            return self._queue.get_nowait()
        if self.closed:
            return None

        get_task = asyncio.ensure_future(self._queue.get())
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait([get_task, closed_task], return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed_task.cancel()
            if not get_task.done():
                get_task.cancel()

        if get_task.done() and not get_task.cancelled():
            return get_task.result()
        return None

    def close(self) -> None:
        """Mark the connection closed. Safe to call more than once."""
        self._closed.set()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"ClientConnection({self.id!r}, {state})"
