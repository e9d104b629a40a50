"""Shared fixtures: a fake event loop driven by a simulated clock."""

from __future__ import annotations

import logging
from typing import Callable

import pytest

from stageclock.core.display import DisplayFrame
from stageclock.core.timer import CountdownEngine


class FakeHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Stands in for an asyncio loop: ``call_later`` plus a clock we move by hand."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[FakeHandle] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    def pending(self) -> list[FakeHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every callback on time along the way."""
        end = self.now + seconds
        while True:
            due = [h for h in self.pending() if h.when <= end]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback()
        self.now = end

    def jump(self, seconds: float) -> None:
        """Move the clock without firing anything (a late or stalled loop)."""
        self.now += seconds

    def run_due(self) -> None:
        """Fire, once, the callbacks that are already due at the current time."""
        due = sorted((h for h in self.pending() if h.when <= self.now), key=lambda h: h.when)
        for handle in due:
            self._handles.remove(handle)
            if not handle.cancelled:
                handle.callback()

    def fire_stale(self, handle: FakeHandle) -> None:
        """Run a callback even though it was cancelled, as a queued callback might."""
        handle.callback()


@pytest.fixture()
def loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture()
def frames() -> list[DisplayFrame]:
    return []


@pytest.fixture()
def engine(loop: FakeLoop, frames: list[DisplayFrame]) -> CountdownEngine:
    """A 5:00 engine on the fake loop, recording every published frame."""
    return CountdownEngine(300, loop=loop, clock=loop.time, interval=0.25, on_frame=frames.append)


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers():
    """CLI invocations attach a handler to a stream that closes with the runner."""
    yield
    logging.getLogger("stageclock").handlers.clear()
