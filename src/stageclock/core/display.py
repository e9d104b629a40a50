"""Pure display derivations for the countdown: formatting, progress, warnings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stageclock.core.timer import Phase


def format_hms(seconds: int) -> str:
    """Format *seconds* as ``HH:MM:SS``.

    The hours field is not clamped to 24, so ``format_hms(90000)`` is
    ``"25:00:00"``.  Negative input is shown as zero.
    """
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def progress_fraction(remaining: int, total: int) -> float:
    """Return ``remaining / total`` in ``0.0 .. 1.0`` (``0.0`` when *total* is 0)."""
    if total <= 0:
        return 0.0
    return min(max(remaining / total, 0.0), 1.0)


def is_in_final_quarter(remaining: int, total: int) -> bool:
    """True while some time is left and at most a quarter of *total* remains."""
    return 0 < remaining <= math.ceil(total / 4)


def ring_offset(fraction: float, radius: float) -> float:
    """Stroke-dash offset that draws *fraction* of a circle of *radius*.

    The terminal display draws a bar instead; this is for graphical
    renderers that draw the countdown as a ring, such as an SVG circle
    with ``stroke-dasharray`` set to the circumference.
    """
    circumference = 2 * math.pi * radius
    return circumference - fraction * circumference


@dataclass(frozen=True)
class DisplayFrame:
    """One published snapshot of the countdown, as handed to a display."""

    remaining_seconds: int
    phase: Phase
    progress_fraction: float
    in_final_quarter: bool

    @property
    def text(self) -> str:
        return format_hms(self.remaining_seconds)
