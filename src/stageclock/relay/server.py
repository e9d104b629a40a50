"""HTTP upload relay for background images.

Endpoints
---------
POST /upload             multipart field ``image`` -> {"filename": "uploads/<name>"}
GET  /uploads/<name>     the stored file, unmodified
"""

from __future__ import annotations

import re
import time
from urllib.parse import unquote
from pathlib import Path
from typing import Optional

from aiohttp import web

from stageclock.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4000
DEFAULT_UPLOAD_DIR = Path("uploads")
FIELD_NAME = "image"

_WHITESPACE = re.compile(r"\s+")


def generate_name(original: str, now_millis: Optional[int] = None) -> str:
    """Return ``<epoch-millis>-<name>`` with whitespace runs turned into ``-``.

    Only the final path component of *original* is kept.
    """
    if now_millis is None:
        now_millis = int(time.time() * 1000)
    base = Path(original.replace("\\", "/")).name
    return f"{now_millis}-{_WHITESPACE.sub('-', base)}"


class UploadRelay:
    """Receives uploaded images, writes them to disk and serves them back."""

    def __init__(self, upload_dir: Path = DEFAULT_UPLOAD_DIR) -> None:
        self.upload_dir = Path(upload_dir)

    def build_app(self) -> web.Application:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        app = web.Application()
        app.router.add_post("/upload", self._handle_upload)
        app.router.add_static("/uploads", self.upload_dir)
        return app

    def run(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        """Serve until interrupted."""
        logger.info("Upload relay running on http://%s:%s", host, port)
        web.run_app(self.build_app(), host=host, port=port, print=None)

    async def _handle_upload(self, request: web.Request) -> web.Response:
        if not request.content_type.startswith("multipart/"):
            return self._no_file()

        reader = await request.multipart()
        async for field in reader:
            if field.name != FIELD_NAME or not field.filename:
                continue
            name = generate_name(unquote(field.filename))
            path = self.upload_dir / name
            size = 0
            with open(path, "wb") as f:
                while True:
                    chunk = await field.read_chunk()
                    if not chunk:
                        break
                    size += len(chunk)
                    f.write(chunk)
            logger.info("Stored upload %s (%d bytes)", name, size)
            return web.json_response({"filename": f"uploads/{name}"})

        return self._no_file()

    @staticmethod
    def _no_file() -> web.Response:
        logger.info("Upload rejected: no %r field", FIELD_NAME)
        return web.json_response({"error": "No file"}, status=400)
