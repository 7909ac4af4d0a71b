"""Runs the file server, websocket and trigger listeners together."""

import asyncio
import contextlib
import logging
import socket
from types import FrameType

import uvicorn

from hotserve.api.app import create_app, create_trigger_app
from hotserve.config import ServerConfig
from hotserve.events import ReloadChannel
from hotserve.reload.watcher import FileChangeWatcher

logger = logging.getLogger(__name__)

# The trigger listener is never exposed beyond this machine.
TRIGGER_HOST = "127.0.0.1"


class StartupError(Exception):
    """Raised when the server cannot reach a servable state."""


def bind_socket(host: str, port: int) -> socket.socket:
    """Create a socket bound to ``host:port``.

    Raises:
        StartupError: If the address cannot be bound.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as err:
        sock.close()
        raise StartupError(f"Cannot bind {host}:{port}: {err.strerror or err}") from err
    sock.set_inheritable(True)
    return sock


class _LinkedServer(uvicorn.Server):
    """A uvicorn server that stops its sibling servers on shutdown signals.

    Only one signal handler is active per process, so whichever server
    receives the signal forwards it to the rest of the group.
    """

    def __init__(self, config: uvicorn.Config, group: list["_LinkedServer"]):
        super().__init__(config)
        self.group = group
        group.append(self)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        super().handle_exit(sig, frame)
        for server in self.group:
            if server is not self:
                server.should_exit = True


class HotServer:
    """A configured hotserve instance.

    Owns the reload channel shared by every listener:

    - the file server on ``config.host:config.port``
    - the same app on ``config.ws_port`` for the injected client script
    - the trigger listener on ``127.0.0.1:config.trigger_port``
    - the file watcher, in watch mode
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.channel = ReloadChannel()
        self.app = create_app(config, self.channel)
        self.trigger = self.app.state.trigger
        self.trigger_app = create_trigger_app(self.trigger)
        self.watcher = FileChangeWatcher([config.root_dir], use_hash=True) if config.watch else None
        self._servers: list[_LinkedServer] = []
        self._sockets: list[socket.socket] = []

    def bind(self) -> None:
        """Bind every listening socket, or none.

        Raises:
            StartupError: If any configured port cannot be bound.
        """
        addresses = [(self.config.host, self.config.port)]
        if self.config.serves_separate_ws_port:
            addresses.append((self.config.host, self.config.ws_port))
        addresses.append((TRIGGER_HOST, self.config.trigger_port))

        try:
            for host, port in addresses:
                self._sockets.append(bind_socket(host, port))
        except StartupError:
            self.close_sockets()
            raise

    def close_sockets(self) -> None:
        for sock in self._sockets:
            sock.close()
        self._sockets = []

    def _uvicorn_config(self, app, lifespan: str) -> uvicorn.Config:
        # log_config=None leaves uvicorn's loggers to our handlers
        return uvicorn.Config(app, lifespan=lifespan, log_config=None)

    async def serve(self) -> None:
        """Serve until shut down. Binds first if :meth:`bind` was not called."""
        if not self._sockets:
            self.bind()

        servers = self._servers
        servers.clear()
        apps = [(self.app, "on")]
        if self.config.serves_separate_ws_port:
            apps.append((self.app, "off"))
        apps.append((self.trigger_app, "off"))
        for app, lifespan in apps:
            _LinkedServer(self._uvicorn_config(app, lifespan), servers)

        watch_task: asyncio.Task | None = None
        if self.watcher is not None:
            watch_task = asyncio.create_task(
                self.watcher.watch_loop(
                    self.trigger.on_file_changes,
                    poll_interval=self.config.poll_interval,
                    debounce_seconds=self.config.debounce_seconds,
                )
            )

        try:
            await asyncio.gather(
                *(server.serve(sockets=[sock]) for server, sock in zip(servers, self._sockets, strict=True))
            )
        finally:
            if watch_task is not None:
                watch_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watch_task
            await self.channel.close_all()
            self.close_sockets()

    def shutdown(self) -> None:
        """Ask every listener to stop."""
        for server in self._servers:
            server.should_exit = True


def run(config: ServerConfig) -> None:
    """Bind and serve until interrupted.

    Raises:
        StartupError: If a configured port cannot be bound.
    """
    server = HotServer(config)
    server.bind()
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(server.serve())
