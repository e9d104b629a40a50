"""Terminal display surface for the countdown."""

from __future__ import annotations

import click

from stageclock.core.display import DisplayFrame
from stageclock.core.timer import Phase

_BAR_WIDTH = 30


class TerminalDisplay:
    """Redraws a single terminal line for every published frame."""

    def __init__(self, bar_width: int = _BAR_WIDTH) -> None:
        self._bar_width = bar_width

    def render(self, frame: DisplayFrame) -> None:
        click.echo("\r\033[K" + self.format_frame(frame), nl=False)

    def message(self, text: str, ok: bool = True) -> None:
        """Print an operator message on its own line."""
        if text:
            click.echo("\n" + text, err=not ok)

    def format_frame(self, frame: DisplayFrame) -> str:
        filled = round(frame.progress_fraction * self._bar_width)
        bar = "#" * filled + "-" * (self._bar_width - filled)
        line = f"{frame.text}  [{bar}]"
        if frame.remaining_seconds == 0:
            return click.style(f"{line}  Time up!", fg="red", bold=True)
        if frame.in_final_quarter:
            return click.style(f"{line}  Only {frame.text} remaining!", fg="yellow")
        if frame.phase == Phase.PAUSED:
            return f"{line}  (paused)"
        return line
