"""Map request paths onto files under the served root directory."""

import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ResolutionError(Exception):
    """Base class for request paths that cannot be served.

    ``status_code`` is the HTTP status the client sees; the message is for
    logs only.
    """

    status_code = 500

    def __init__(self, request_path: str, reason: str):
        self.request_path = request_path
        self.reason = reason
        super().__init__(f"Cannot serve {request_path!r}: {reason}")


class PathOutsideRootError(ResolutionError):
    """The request path escapes the root directory."""

    status_code = 404


class FileMissingError(ResolutionError):
    """Nothing servable exists at the request path."""

    status_code = 404


class AccessDeniedError(ResolutionError):
    """The file exists but cannot be read."""

    status_code = 403


@dataclass(frozen=True)
class ResolvedPath:
    """Result of resolving a request path."""

    request_path: str
    path: Path
    is_dir: bool = False

    @property
    def needs_redirect(self) -> bool:
        """Directories must be requested with a trailing slash."""
        return self.is_dir and not self.request_path.endswith("/")


def content_type_for(path: Path) -> str:
    """Guess a content type from the file extension."""
    mime, _ = mimetypes.guess_type(path.name)
    return mime or DEFAULT_CONTENT_TYPE


class FileResolver:
    """Resolves request paths to files under ``root``.

    Resolution never follows a path out of the root, including through
    symlinks, and never lists directories.
    """

    def __init__(self, root: str | Path, index_files: tuple[str, ...] = ("index.html",)):
        self.root = Path(root).resolve()
        self.index_files = index_files

    def _local_path(self, request_path: str) -> Path:
        """Join an already percent-decoded request path onto the root."""
        if "\x00" in request_path:
            raise FileMissingError(request_path, "path contains a NUL byte")

        relative = request_path.split("?", 1)[0].lstrip("/")
        try:
            candidate = (self.root / relative).resolve()
        except (OSError, RuntimeError) as err:
            raise FileMissingError(request_path, f"cannot resolve path: {err}") from err

        if not candidate.is_relative_to(self.root):
            logger.warning(f"Rejected path outside root: {request_path!r}")
            raise PathOutsideRootError(request_path, "path escapes root directory")
        return candidate

    def locate(self, request_path: str) -> ResolvedPath:
        """Find what a request path points at, without choosing an index file.

        Raises:
            ResolutionError: If the path escapes the root or does not exist.
        """
        path = self._local_path(request_path)
        try:
            is_dir = path.is_dir()
            exists = is_dir or path.exists()
        except OSError as err:
            raise FileMissingError(request_path, f"cannot stat path: {err.strerror or err}") from err

        if is_dir:
            return ResolvedPath(request_path, path, is_dir=True)
        if not exists:
            raise FileMissingError(request_path, "no such file")
        # A trailing slash names a directory, never a file
        if request_path.split("?", 1)[0].endswith("/"):
            raise FileMissingError(request_path, "not a directory")
        return ResolvedPath(request_path, path)

    def resolve(self, request_path: str) -> ResolvedPath:
        """Resolve a request path to a regular file, picking an index file
        for directories.

        Raises:
            ResolutionError: If there is no readable regular file to serve.
        """
        located = self.locate(request_path)
        path = located.path

        try:
            if located.is_dir:
                for name in self.index_files:
                    index = path / name
                    if index.is_file():
                        logger.debug(f"Using {index} for directory {request_path!r}")
                        path = index
                        break
                else:
                    raise FileMissingError(request_path, "directory has no index file")

            is_file = path.is_file()
        except OSError as err:
            raise FileMissingError(request_path, f"cannot stat path: {err.strerror or err}") from err

        if not is_file:
            raise FileMissingError(request_path, "not a regular file")
        if not os.access(path, os.R_OK):
            raise AccessDeniedError(request_path, "permission denied")
        if not path.resolve().is_relative_to(self.root):
            raise PathOutsideRootError(request_path, "index file escapes root directory")

        return ResolvedPath(request_path, path, is_dir=located.is_dir)

    def read(self, resolved: ResolvedPath) -> bytes:
        """Read a resolved file.

        Raises:
            ResolutionError: If the file vanished or cannot be read.
        """
        try:
            return resolved.path.read_bytes()
        except FileNotFoundError as err:
            raise FileMissingError(resolved.request_path, "file disappeared") from err
        except PermissionError as err:
            raise AccessDeniedError(resolved.request_path, "permission denied") from err
