"""Live-reload event channel."""

from hotserve.events.channel import BroadcastResult, ReloadChannel
from hotserve.events.types import ClientConnection, ConnectionClosedError, ReloadEvent

__all__ = [
    "BroadcastResult",
    "ClientConnection",
    "ConnectionClosedError",
    "ReloadChannel",
    "ReloadEvent",
]
