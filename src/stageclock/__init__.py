"""stageclock: a full-screen countdown display for live events."""

__version__ = "0.1.0"
