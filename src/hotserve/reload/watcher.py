"""Polling file watcher for watch mode.

Scans the served tree periodically and reports created, modified and
deleted files. Used when the server is started with ``--watch``; external
watchers can use the trigger endpoint instead.
"""

import asyncio
import fnmatch
import hashlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_PATTERNS = [
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".DS_Store",
    "*.swp",
    "*.swx",
    "*~",
    ".#*",
]


@dataclass
class FileChange:
    """Represents a detected file change."""

    path: Path
    change_type: str  # "modified", "created", "deleted"
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class FileChangeWatcher:
    """Watches directories for file changes.

    Compares modification time and size between scans; with ``use_hash``
    a changed mtime only counts when the content hash changed too.
    Any path component matching an ignore pattern excludes the file.
    """

    def __init__(
        self,
        watch_dirs: list[str | Path],
        patterns: list[str] | None = None,
        ignore_patterns: list[str] | None = None,
        use_hash: bool = False,
    ):
        self.watch_dirs = [Path(d) for d in watch_dirs]
        self.patterns = patterns or ["*"]
        self.ignore_patterns = DEFAULT_IGNORE_PATTERNS if ignore_patterns is None else ignore_patterns
        self.use_hash = use_hash

        # path -> (mtime_ns, size, hash or None)
        self._file_states: dict[Path, tuple[int, int, str | None]] = {}
        self._initialized = False

    def _should_ignore(self, path: Path) -> bool:
        """Check if any component of the path matches an ignore pattern."""
        return any(
            fnmatch.fnmatch(part, pattern) for part in path.parts for pattern in self.ignore_patterns
        )

    def _matches_pattern(self, path: Path) -> bool:
        return any(fnmatch.fnmatch(path.name, pattern) for pattern in self.patterns)

    def _compute_hash(self, path: Path) -> str:
        """Compute SHA256 hash of file content."""
        return hashlib.sha256(path.read_bytes()).hexdigest()

    def _scan_files(self) -> dict[Path, tuple[int, int, str | None]]:
        """Scan all watched directories for matching files."""
        files: dict[Path, tuple[int, int, str | None]] = {}

        for watch_dir in self.watch_dirs:
            if not watch_dir.exists():
                continue

            for path in watch_dir.rglob("*"):
                if self._should_ignore(path.relative_to(watch_dir)):
                    continue
                if not self._matches_pattern(path):
                    continue

                try:
                    if not path.is_file():
                        continue
                    stat = path.stat()
                    previous = self._file_states.get(path)
                    if self.use_hash and previous and previous[0] == stat.st_mtime_ns:
                        file_hash = previous[2]
                    else:
                        file_hash = self._compute_hash(path) if self.use_hash else None
                    files[path] = (stat.st_mtime_ns, stat.st_size, file_hash)
                except OSError as e:
                    logger.debug(f"Error scanning {path}: {e}")

        return files

    def initialize(self) -> None:
        """Initialize the watcher state by scanning current files."""
        self._file_states = self._scan_files()
        self._initialized = True
        logger.info(f"Watching {len(self._file_states)} files under {', '.join(map(str, self.watch_dirs))}")

    def _has_changed(self, old: tuple[int, int, str | None], new: tuple[int, int, str | None]) -> bool:
        if self.use_hash:
            return old[2] != new[2]
        return old[:2] != new[:2]

    def detect_changes(self) -> list[FileChange]:
        """Detect changes since last scan.

        Returns:
            List of FileChange objects describing detected changes.
        """
        if not self._initialized:
            self.initialize()
            return []  # First run, no changes to report

        current_files = self._scan_files()
        changes: list[FileChange] = []

        for path, state in current_files.items():
            if path not in self._file_states:
                changes.append(FileChange(path=path, change_type="created"))
            elif self._has_changed(self._file_states[path], state):
                changes.append(FileChange(path=path, change_type="modified"))

        for path in self._file_states:
            if path not in current_files:
                changes.append(FileChange(path=path, change_type="deleted"))

        self._file_states = current_files

        return changes

    async def watch_loop(
        self,
        callback: Callable[[list[FileChange]], Awaitable[Any]],
        poll_interval: float = 0.5,
        debounce_seconds: float = 0.2,
    ) -> None:
        """Run a continuous watch loop until cancelled.

        Args:
            callback: Async function to call with each batch of changes.
            poll_interval: Seconds between directory scans.
            debounce_seconds: Quiet period required before a batch is reported.
        """
        await asyncio.to_thread(self.initialize)
        pending_changes: list[FileChange] = []
        last_change_time: datetime | None = None

        while True:
            changes = await asyncio.to_thread(self.detect_changes)

            if changes:
                pending_changes.extend(changes)
                last_change_time = datetime.now(UTC)

            # Debounce: wait for changes to settle
            if (
                pending_changes
                and last_change_time
                and (datetime.now(UTC) - last_change_time).total_seconds() >= debounce_seconds
            ):
                logger.info(f"Detected {len(pending_changes)} file changes")
                try:
                    await callback(pending_changes)
                except Exception as e:
                    logger.error(f"Change callback failed: {e}", exc_info=e)
                pending_changes = []
                last_change_time = None

            await asyncio.sleep(poll_interval)
