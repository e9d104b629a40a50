"""Tests for the background-image provider."""

from pathlib import Path

import pytest

from stageclock.background import UploadError, local_background, upload_background
from stageclock.relay.server import UploadRelay


class TestLocalBackground:
    def test_returns_file_uri(self, tmp_path: Path) -> None:
        image = tmp_path / "backdrop.jpg"
        image.write_bytes(b"jpg")
        assert local_background(image) == image.resolve().as_uri()

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            local_background(tmp_path / "nope.jpg")


class TestUploadBackground:
    """upload_background() posts to the relay and returns the served URL."""

    async def test_upload_round_trip(self, aiohttp_server, tmp_path: Path) -> None:
        image = tmp_path / "back drop.png"
        image.write_bytes(b"\x89PNG-data")
        server = await aiohttp_server(UploadRelay(tmp_path / "uploads").build_app())
        base = str(server.make_url("/"))

        url = await upload_background(image, base)

        assert url.startswith(base.rstrip("/") + "/uploads/")
        assert url.endswith("-back-drop.png")
        stored = list((tmp_path / "uploads").iterdir())
        assert [p.read_bytes() for p in stored] == [b"\x89PNG-data"]

    async def test_rejected_upload_raises(self, aiohttp_server, tmp_path: Path) -> None:
        from aiohttp import web

        async def reject(request: web.Request) -> web.Response:
            return web.json_response({"error": "No file"}, status=400)

        app = web.Application()
        app.router.add_post("/upload", reject)
        server = await aiohttp_server(app)
        image = tmp_path / "bg.png"
        image.write_bytes(b"png")

        with pytest.raises(UploadError, match="HTTP 400"):
            await upload_background(image, str(server.make_url("/")))

    async def test_unreachable_relay_raises(self, tmp_path: Path, unused_tcp_port: int) -> None:
        image = tmp_path / "bg.png"
        image.write_bytes(b"png")
        with pytest.raises(UploadError, match="unreachable"):
            await upload_background(image, f"http://127.0.0.1:{unused_tcp_port}")
