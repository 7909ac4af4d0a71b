"""Change trigger routes.

Served on their own loopback-only port so that file-watching tools can
request a reload without going through the static file server.
"""

import ipaddress
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from hotserve.api.deps import get_channel, get_trigger
from hotserve.events import ReloadChannel
from hotserve.reload.trigger import ChangeTrigger

logger = logging.getLogger(__name__)


def _is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


async def require_local_client(request: Request) -> None:
    """Reject trigger requests that do not come from this machine."""
    host = request.client.host if request.client else None
    if host is None or not _is_loopback(host):
        logger.warning(f"Rejected reload trigger from non-local client {host}")
        raise HTTPException(status_code=403, detail="Reload trigger is local-only")


router = APIRouter(dependencies=[Depends(require_local_client)])


@router.post("/reload")
async def trigger_reload(trigger: Annotated[ChangeTrigger, Depends(get_trigger)]) -> dict:
    """Broadcast one reload to every connected client."""
    result = await trigger.fire(reason="trigger endpoint")
    return result.to_json()


@router.get("/health")
async def trigger_health(channel: Annotated[ReloadChannel, Depends(get_channel)]) -> dict:
    """Report listener status and connected client count."""
    return {"status": "healthy", "connections": channel.connection_count}
