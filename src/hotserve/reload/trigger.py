"""The change trigger: turns "something changed" into one broadcast."""

import logging

from hotserve.events import BroadcastResult, ReloadChannel
from hotserve.reload.watcher import FileChange

logger = logging.getLogger(__name__)


class ChangeTrigger:
    """Broadcasts a reload on the channel each time it fires.

    Fired by the trigger endpoint (for external watchers) and by the
    embedded :class:`~hotserve.reload.watcher.FileChangeWatcher`.
    Concurrent calls are independent; the channel serializes what it must.
    """

    def __init__(self, channel: ReloadChannel):
        self.channel = channel
        self._fire_count = 0

    async def fire(self, reason: str = "external") -> BroadcastResult:
        """Broadcast exactly one reload event."""
        self._fire_count += 1
        logger.info(f"Reload triggered ({reason})")
        return await self.channel.broadcast()

    async def on_file_changes(self, changes: list[FileChange]) -> BroadcastResult:
        """Watcher callback: one reload per batch of changes."""
        for change in changes:
            logger.debug(f"{change.change_type}: {change.path}")
        return await self.fire(reason=f"{len(changes)} file change(s)")

    @property
    def fire_count(self) -> int:
        """Number of times the trigger has fired."""
        return self._fire_count
