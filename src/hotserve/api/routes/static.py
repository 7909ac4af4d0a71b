"""Static file routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, RedirectResponse, Response

from hotserve.api.client import render_client_script
from hotserve.api.deps import get_config, get_resolver
from hotserve.config import ServerConfig
from hotserve.resolver import FileResolver, ResolvedPath, content_type_for

logger = logging.getLogger(__name__)

router = APIRouter()

HTML_SUFFIXES = {".html", ".htm"}


def _redirect_to_directory(request: Request) -> RedirectResponse:
    location = request.url.path + "/"
    if request.url.query:
        location += "?" + request.url.query
    logger.info(f"Redirecting {request.url.path} to {location}")
    return RedirectResponse(location, status_code=302)


def _html_response(
    request: Request,
    resolver: FileResolver,
    resolved: ResolvedPath,
    config: ServerConfig,
) -> Response:
    """Serve an HTML file with the live-reload client appended."""
    body = resolver.read(resolved) + render_client_script(config.ws_port, config.reload_path)
    media_type = content_type_for(resolved.path)
    if request.method == "HEAD":
        return Response(
            status_code=200,
            media_type=media_type,
            headers={"content-length": str(len(body))},
        )
    return Response(body, status_code=200, media_type=media_type)


@router.api_route("/{path:path}", methods=["GET", "HEAD"])
async def serve_static(
    request: Request,
    config: Annotated[ServerConfig, Depends(get_config)],
    resolver: Annotated[FileResolver, Depends(get_resolver)],
) -> Response:
    """Serve a file from the root directory.

    Directories are served through their index file; a directory requested
    without a trailing slash is redirected first so relative links in the
    index page resolve against the directory.
    """
    request_path = request.scope["path"]
    located = resolver.locate(request_path)
    if located.needs_redirect:
        return _redirect_to_directory(request)

    resolved = resolver.resolve(request_path)
    logger.debug(f"{request.method} {request_path} -> {resolved.path}")

    if config.inject_client and resolved.path.suffix.lower() in HTML_SUFFIXES:
        return _html_response(request, resolver, resolved, config)

    return FileResponse(resolved.path, media_type=content_type_for(resolved.path))
