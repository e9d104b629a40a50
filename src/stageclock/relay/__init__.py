"""Upload relay: stores background images and serves them back."""

from stageclock.relay.server import UploadRelay, generate_name

__all__ = ["UploadRelay", "generate_name"]
