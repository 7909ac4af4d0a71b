"""FastAPI dependencies."""

from fastapi import Request

from hotserve.config import ServerConfig
from hotserve.events import ReloadChannel
from hotserve.reload.trigger import ChangeTrigger
from hotserve.resolver import FileResolver


async def get_config(request: Request) -> ServerConfig:
    """Get the server configuration from app state."""
    return request.app.state.config


async def get_resolver(request: Request) -> FileResolver:
    """Get the file resolver from app state."""
    return request.app.state.resolver


async def get_channel(request: Request) -> ReloadChannel:
    """Get the reload channel from app state."""
    return request.app.state.channel


async def get_trigger(request: Request) -> ChangeTrigger:
    """Get the change trigger from app state."""
    return request.app.state.trigger
