"""FastAPI application factories."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hotserve import __version__
from hotserve.api.errors import install_error_handlers
from hotserve.api.routes import livereload, static
from hotserve.api.routes import trigger as trigger_routes
from hotserve.config import ServerConfig
from hotserve.events import ReloadChannel
from hotserve.reload.trigger import ChangeTrigger
from hotserve.resolver import FileResolver

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    config: ServerConfig = app.state.config
    logger.info(f"Serving {config.root_dir} at {config.url}")

    yield

    # Wake every send task so no connection outlives the server
    await app.state.channel.close_all()
    logger.info("File server stopped")


def create_app(
    config: ServerConfig,
    channel: ReloadChannel | None = None,
) -> FastAPI:
    """Create the file server app.

    Websocket upgrades on ``config.reload_path`` go to the live-reload
    endpoint; every other request is a static file request.
    """
    app = FastAPI(
        title="hotserve",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    channel = channel or ReloadChannel()
    app.state.config = config
    app.state.channel = channel
    app.state.trigger = ChangeTrigger(channel)
    app.state.resolver = FileResolver(config.root_dir, index_files=config.index_files)

    install_error_handlers(app)

    # The catch-all static route must come last
    app.include_router(livereload.router, prefix=config.reload_path, tags=["livereload"])
    app.include_router(static.router, tags=["static"])

    return app


def create_trigger_app(trigger: ChangeTrigger) -> FastAPI:
    """Create the loopback-only app that external watchers call to reload."""
    app = FastAPI(
        title="hotserve trigger",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.trigger = trigger
    app.state.channel = trigger.channel

    app.include_router(trigger_routes.router, tags=["trigger"])

    return app
