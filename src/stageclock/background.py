"""Background-image provider: a local file URL, or one served by the upload relay."""

from __future__ import annotations

from pathlib import Path

import aiohttp

from stageclock.logging_config import get_logger
from stageclock.relay.server import FIELD_NAME

logger = get_logger(__name__)


class UploadError(Exception):
    """Raised when the upload relay does not accept a file."""


def local_background(path: Path) -> str:
    """Return a ``file://`` URL for *path*, which must exist."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"no such image: {path}")
    return path.resolve().as_uri()


async def upload_background(path: Path, server_url: str) -> str:
    """Upload *path* to the relay at *server_url* and return the served URL."""
    path = Path(path)
    base = server_url.rstrip("/")
    form = aiohttp.FormData()
    with open(path, "rb") as f:
        form.add_field(FIELD_NAME, f.read(), filename=path.name)

    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(f"{base}/upload", data=form) as resp:
                if resp.status != 200:
                    raise UploadError(f"upload failed with HTTP {resp.status}")
                body = await resp.json()
    except aiohttp.ClientError as exc:
        raise UploadError(f"upload relay unreachable at {base}: {exc}") from exc

    url = f"{base}/{body['filename']}"
    logger.info("Uploaded %s to %s", path.name, url)
    return url
