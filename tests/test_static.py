"""Static file serving tests."""

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from hotserve.api.app import create_app
from hotserve.config import ServerConfig
from hotserve.resolver import FileResolver


class TestFiles:
    async def test_root_serves_index(self, client: AsyncClient, site_dir: Path):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert response.text.startswith((site_dir / "index.html").read_text())

    async def test_html_gets_client_script(self, client: AsyncClient):
        response = await client.get("/index.html")

        assert response.status_code == 200
        assert "<script>" in response.text
        assert "/__livereload" in response.text
        assert '"8090"' in response.text
        assert int(response.headers["content-length"]) == len(response.content)

    async def test_css(self, client: AsyncClient):
        response = await client.get("/style.css")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/css")
        assert response.text == "body { color: red; }\n"

    async def test_unknown_extension_is_octet_stream(self, client: AsyncClient):
        response = await client.get("/blob.unknownext")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.content == b"\x00\x01\x02"

    async def test_percent_encoded_name(self, client: AsyncClient, site_dir: Path):
        (site_dir / "with space.txt").write_text("spaced")

        response = await client.get("/with%20space.txt")

        assert response.status_code == 200
        assert response.text == "spaced"

    async def test_head_matches_get_without_body(self, client: AsyncClient):
        get = await client.get("/")
        head = await client.head("/")

        assert head.status_code == 200
        assert head.content == b""
        assert head.headers["content-length"] == get.headers["content-length"]
        assert head.headers["content-type"] == get.headers["content-type"]

    async def test_head_static_file(self, client: AsyncClient):
        response = await client.head("/style.css")

        assert response.status_code == 200
        assert response.content == b""


class TestDirectories:
    async def test_directory_without_slash_redirects(self, client: AsyncClient):
        response = await client.get("/docs")

        assert response.status_code == 302
        assert response.headers["location"] == "/docs/"

    async def test_redirect_keeps_query(self, client: AsyncClient):
        response = await client.get("/docs?page=2")

        assert response.status_code == 302
        assert response.headers["location"] == "/docs/?page=2"

    async def test_directory_with_index(self, client: AsyncClient, site_dir: Path):
        response = await client.get("/docs/")

        assert response.status_code == 200
        assert response.text.startswith((site_dir / "docs" / "index.html").read_text())

    async def test_directory_without_index_is_404(self, client: AsyncClient):
        response = await client.get("/empty/")

        assert response.status_code == 404
        assert "404 Not Found" in response.text


class TestErrors:
    async def test_name_too_long_is_404(self, client: AsyncClient):
        response = await client.get("/" + "a" * 300)

        assert response.status_code == 404
        assert "404 Not Found" in response.text

    async def test_file_with_trailing_slash_is_404(self, client: AsyncClient):
        response = await client.get("/style.css/")

        assert response.status_code == 404

    async def test_missing_file(self, client: AsyncClient):
        response = await client.get("/missing.txt")

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/html")
        assert "404 Not Found" in response.text

    @pytest.mark.parametrize(
        "url",
        ["/..%2F..%2Fetc%2Fpasswd", "/docs/..%2F..%2Foutside.txt", "/%2E%2E/outside.txt"],
    )
    async def test_traversal_is_404(self, client: AsyncClient, site_dir: Path, url: str):
        (site_dir.parent / "outside.txt").write_text("top secret")

        response = await client.get(url)

        assert response.status_code == 404
        assert "top secret" not in response.text
        assert "root:" not in response.text

    async def test_unsupported_method(self, client: AsyncClient):
        response = await client.post("/index.html")

        assert response.status_code == 405
        assert "GET" in response.headers["allow"]

    async def test_io_error_hides_details(
        self,
        client: AsyncClient,
        monkeypatch: pytest.MonkeyPatch,
    ):
        def broken_read(self, resolved):
            raise OSError(5, "Input/output error on /very/secret/disk")

        monkeypatch.setattr(FileResolver, "read", broken_read)

        response = await client.get("/")

        assert response.status_code == 500
        assert "500 Internal Server Error" in response.text
        assert "secret" not in response.text


async def test_injection_disabled(site_dir: Path):
    app = create_app(ServerConfig(root_dir=site_dir, inject_client=False))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/")

    assert response.status_code == 200
    assert response.text == (site_dir / "index.html").read_text()
