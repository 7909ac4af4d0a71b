"""HTML error pages and exception handlers."""

import html
import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hotserve.resolver import ResolutionError

logger = logging.getLogger(__name__)

ERROR_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
<h1>{title}</h1>
</body>
</html>
"""


def status_line(status_code: int) -> str:
    """Format a status code as e.g. ``404 Not Found``."""
    try:
        return f"{status_code} {HTTPStatus(status_code).phrase}"
    except ValueError:
        return str(status_code)


def error_response(status_code: int, headers: dict[str, str] | None = None) -> HTMLResponse:
    """Render an error page for a status code.

    The page only ever contains the status line.
    """
    body = ERROR_PAGE.format(title=html.escape(status_line(status_code)))
    return HTMLResponse(body, status_code=status_code, headers=headers)


async def resolution_error_handler(request: Request, exc: ResolutionError) -> HTMLResponse:
    logger.debug(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.reason}")
    return error_response(exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> HTMLResponse:
    return error_response(exc.status_code, headers=exc.headers)


async def os_error_handler(request: Request, exc: OSError) -> HTMLResponse:
    logger.error(f"I/O error serving {request.url.path}: {exc}", exc_info=exc)
    return error_response(500)


def install_error_handlers(app: FastAPI) -> None:
    """Register the HTML error handlers on an app."""
    app.add_exception_handler(ResolutionError, resolution_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(OSError, os_error_handler)
