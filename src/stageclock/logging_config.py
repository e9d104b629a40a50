"""Console logging for stageclock, colored with colorlog."""

from __future__ import annotations

import logging

from colorlog import ColoredFormatter

_FORMAT = (
    "%(green)s%(asctime)s%(reset)s [%(blue)s%(name)s%(reset)s] "
    "%(log_color)s%(levelname)s%(reset)s - %(message)s"
)

_LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "white",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def setup_logging(level: str = "WARNING") -> logging.Logger:
    """Attach a colored stderr handler to the ``stageclock`` logger.

    Calling this again replaces the handler instead of adding a second one.
    """
    root = logging.getLogger("stageclock")
    root.setLevel(level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(_FORMAT, log_colors=_LOG_COLORS))
    root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
