"""Reload channel: broadcasts reload events to live-reload clients."""

import asyncio
import logging
from dataclasses import dataclass, field

from hotserve.events.types import ClientConnection, ConnectionClosedError, ReloadEvent

logger = logging.getLogger(__name__)


@dataclass
class BroadcastResult:
    """Outcome of a single broadcast."""

    event: ReloadEvent
    delivered: int = 0
    failed: list[str] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "status": "ok",
            "event_id": self.event.id,
            "delivered": self.delivered,
            "failed": len(self.failed),
        }


class ReloadChannel:
    """Registry of connected live-reload clients.

    Registration, removal and the broadcast snapshot all take the same lock.
    Pushes happen outside the lock but without suspending, so a broadcast is
    delivered to its whole snapshot before any other broadcast starts
    delivering, and each subscriber sees broadcasts in trigger order.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ClientConnection] = {}
        self._lock = asyncio.Lock()

    async def register(self, connection: ClientConnection) -> str:
        """Add a connection and return the handle used to remove it.

        Raises:
            ValueError: If a connection with the same id is already registered.
        """
        async with self._lock:
            if connection.id in self._connections:
                raise ValueError(f"Connection {connection.id} is already registered")
            self._connections[connection.id] = connection
            logger.debug(f"Registered {connection.id} ({len(self._connections)} connected)")
            return connection.id

    async def unregister(self, handle: str) -> None:
        """Remove a connection. Unknown handles are ignored."""
        async with self._lock:
            if self._connections.pop(handle, None) is not None:
                logger.debug(f"Unregistered {handle} ({len(self._connections)} connected)")

    async def broadcast(self, event: ReloadEvent | None = None) -> BroadcastResult:
        """Push a reload event to every registered connection.

        A failed push does not stop delivery to the others; the failed
        connection is removed afterwards.
        """
        event = event or ReloadEvent()
        result = BroadcastResult(event=event)

        async with self._lock:
            snapshot = list(self._connections.values())

        for connection in snapshot:
            try:
                connection.push(event)
                result.delivered += 1
            except ConnectionClosedError as e:
                logger.debug(f"Dropping {e.connection_id}: {e}")
                result.failed.append(connection.id)
            except Exception as e:
                logger.error(f"Failed to push reload to {connection.id}: {e}")
                result.failed.append(connection.id)

        for handle in result.failed:
            await self.unregister(handle)

        logger.info(
            f"Broadcast reload {event.id} to {result.delivered} client(s)"
            + (f", dropped {len(result.failed)}" if result.failed else "")
        )
        return result

    async def close_all(self) -> None:
        """Close and remove every connection, e.g. at shutdown."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            connection.close()
        if connections:
            logger.info(f"Closed {len(connections)} live-reload connection(s)")

    def __contains__(self, handle: str) -> bool:
        return handle in self._connections

    @property
    def connection_count(self) -> int:
        """Get the number of registered connections."""
        return len(self._connections)
