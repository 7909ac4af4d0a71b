"""Change detection and the reload trigger."""

from hotserve.reload.trigger import ChangeTrigger
from hotserve.reload.watcher import FileChange, FileChangeWatcher

__all__ = [
    "ChangeTrigger",
    "FileChange",
    "FileChangeWatcher",
]
