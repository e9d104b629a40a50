"""Operator panel — turns operator commands into countdown actions."""

from __future__ import annotations

from typing import Callable

from stageclock.core.display import format_hms
from stageclock.core.timer import CountdownEngine, CountdownError, Phase

HELP_TEXT = "Commands: set <minutes>, start, pause, resume, reset, status, help, quit"


class OperatorPanel:
    """Drives a :class:`CountdownEngine` from short text commands.

    Every command returns ``(message, ok)``.  Rejected actions are reported
    through ``ok=False`` rather than raised, so a mistyped command never ends
    a running show.
    """

    def __init__(self, engine: CountdownEngine) -> None:
        self._engine = engine

    # -- public API ----------------------------------------------------------

    def handle(self, line: str) -> tuple[str, bool]:
        """Run the command in *line*."""
        parts = line.split()
        if not parts:
            return "", True
        name, args = parts[0].lower(), parts[1:]
        if name == "set":
            if len(args) != 1:
                return "Usage: set <minutes>", False
            return self._guarded(lambda: self.set_minutes(args[0]))
        actions = {
            "start": self.start,
            "pause": self.pause,
            "resume": self.resume,
            "reset": self.reset,
        }
        if name in actions and not args:
            return self._guarded(actions[name])
        if name == "status" and not args:
            return self.status(), True
        if name == "help":
            return HELP_TEXT, True
        return f"Unknown command: {line.strip()}", False

    def set_minutes(self, raw: str) -> str:
        """Configure the duration from operator text such as ``"2.5"``."""
        try:
            minutes = float(raw)
        except ValueError:
            minutes = float("nan")
        self._engine.configure(minutes)
        return f"Timer set: {format_hms(self._engine.get_total())}"

    def start(self) -> str:
        self._engine.start()
        return f"Timer started: {self._remaining()} remaining"

    def pause(self) -> str:
        self._engine.pause()
        return f"Timer paused at {self._remaining()} remaining"

    def resume(self) -> str:
        self._engine.resume()
        return f"Timer resumed: {self._remaining()} remaining"

    def reset(self) -> str:
        self._engine.reset()
        return "Timer reset"

    def status(self) -> str:
        phase = self._engine.get_phase()
        if phase == Phase.EXPIRED:
            return "Time up!"
        if phase == Phase.PAUSED:
            return f"{self._remaining()} remaining (paused)"
        if phase == Phase.RUNNING:
            return f"{self._remaining()} remaining"
        return f"{self._remaining()} ready"

    # -- private helpers -----------------------------------------------------

    def _remaining(self) -> str:
        return format_hms(self._engine.get_remaining())

    @staticmethod
    def _guarded(action: Callable[[], str]) -> tuple[str, bool]:
        try:
            return action(), True
        except CountdownError as exc:
            return str(exc), False
