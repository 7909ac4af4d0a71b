"""Pytest configuration and fixtures."""

import socket
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from hotserve.api.app import create_app
from hotserve.config import ServerConfig

INDEX_HTML = "<!DOCTYPE html>\n<html><body><h1>Home</h1></body></html>\n"
DOCS_HTML = "<!DOCTYPE html>\n<html><body><h1>Docs</h1></body></html>\n"


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def free_port() -> Callable[[], int]:
    """Return a function that finds a port nothing is listening on."""
    return _free_port


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small static site.

    site/
        index.html
        style.css
        blob.unknownext
        docs/index.html
        empty/
    """
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text(INDEX_HTML)
    (site / "style.css").write_text("body { color: red; }\n")
    (site / "blob.unknownext").write_bytes(b"\x00\x01\x02")
    (site / "docs").mkdir()
    (site / "docs" / "index.html").write_text(DOCS_HTML)
    (site / "empty").mkdir()
    return site


@pytest.fixture
def config(site_dir: Path) -> ServerConfig:
    return ServerConfig(root_dir=site_dir)


@pytest.fixture
def app(config: ServerConfig) -> FastAPI:
    return create_app(config)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
