"""Tests for the live-reload websocket endpoint."""

import time
from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import AsyncClient
from starlette.websockets import WebSocketDisconnect

from hotserve.events import ReloadChannel


@pytest.fixture
def test_client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as tc:
        yield tc


def wait_for_count(channel: ReloadChannel, expected: int, timeout: float = 2.0) -> None:
    """Wait until the channel holds ``expected`` connections."""
    deadline = time.monotonic() + timeout
    while channel.connection_count != expected:
        if time.monotonic() > deadline:
            raise AssertionError(f"expected {expected} connections, have {channel.connection_count}")
        time.sleep(0.01)


class TestReloadEndpoint:
    def test_hello_after_registration(self, test_client: TestClient, app: FastAPI):
        channel: ReloadChannel = app.state.channel

        with test_client.websocket_connect("/__livereload") as ws:
            hello = ws.receive_json()
            assert hello["type"] == "hello"
            assert hello["id"] in channel
            assert channel.connection_count == 1

    def test_broadcast_reaches_client(self, test_client: TestClient, app: FastAPI):
        channel: ReloadChannel = app.state.channel

        with test_client.websocket_connect("/__livereload") as ws:
            ws.receive_json()
            result = test_client.portal.call(channel.broadcast)

            message = ws.receive_json()
            assert message == {"type": "reload", "id": result.event.id}
            assert result.delivered == 1

    def test_every_client_gets_one_reload(self, test_client: TestClient, app: FastAPI):
        channel: ReloadChannel = app.state.channel

        with (
            test_client.websocket_connect("/__livereload") as ws1,
            test_client.websocket_connect("/__livereload") as ws2,
        ):
            ws1.receive_json()
            ws2.receive_json()

            first = test_client.portal.call(channel.broadcast)
            second = test_client.portal.call(channel.broadcast)

            for ws in (ws1, ws2):
                assert ws.receive_json()["id"] == first.event.id
                assert ws.receive_json()["id"] == second.event.id

    def test_client_messages_are_ignored(self, test_client: TestClient, app: FastAPI):
        channel: ReloadChannel = app.state.channel

        with test_client.websocket_connect("/__livereload") as ws:
            ws.receive_json()
            ws.send_text("hello server")
            ws.send_bytes(b"\x00\x01")
            result = test_client.portal.call(channel.broadcast)

            assert ws.receive_json()["id"] == result.event.id

    def test_disconnect_unregisters(self, test_client: TestClient, app: FastAPI):
        channel: ReloadChannel = app.state.channel

        with test_client.websocket_connect("/__livereload") as ws:
            ws.receive_json()
            assert channel.connection_count == 1

        wait_for_count(channel, 0)

        result = test_client.portal.call(channel.broadcast)
        assert result.delivered == 0
        assert result.failed == []

    def test_close_all_ends_connection(self, test_client: TestClient, app: FastAPI):
        channel: ReloadChannel = app.state.channel

        with test_client.websocket_connect("/__livereload") as ws:
            ws.receive_json()
            test_client.portal.call(channel.close_all)

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
            assert exc_info.value.code == 1001

        assert channel.connection_count == 0

    def test_other_websocket_paths_rejected(self, test_client: TestClient, app: FastAPI):
        with pytest.raises(WebSocketDisconnect), test_client.websocket_connect("/not-the-reload-path"):
            pass

        assert app.state.channel.connection_count == 0


async def test_plain_http_to_reload_path(client: AsyncClient, app: FastAPI):
    response = await client.get("/__livereload")

    assert response.status_code == 426
    assert response.headers["upgrade"] == "websocket"
    assert app.state.channel.connection_count == 0


async def test_head_to_reload_path(client: AsyncClient):
    response = await client.head("/__livereload")

    assert response.status_code == 426
    assert response.headers["upgrade"] == "websocket"
