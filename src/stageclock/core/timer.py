"""Countdown engine — a drift-free countdown state machine with one tick sampler."""

from __future__ import annotations

import asyncio
import logging
import math
import numbers
import time
from enum import Enum
from typing import Any, Callable, Optional

from stageclock.core.display import DisplayFrame, is_in_final_quarter, progress_fraction

logger = logging.getLogger(__name__)

DEFAULT_SECONDS = 300
DEFAULT_INTERVAL = 0.25


class Phase(Enum):
    """Coarse run-state of the countdown."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"


class CountdownError(Exception):
    """Base class for rejected operator actions."""


class InvalidDuration(CountdownError, ValueError):
    """Raised when configure() is given a non-positive or non-finite duration."""


class NothingToStart(CountdownError):
    """Raised when start() or resume() finds no remaining time."""


class InvalidStateError(CountdownError):
    """Raised when an action is attempted outside the phase it requires."""


FrameCallback = Callable[[DisplayFrame], Any]


def _monotonic() -> float:
    return time.monotonic()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class _Sampler:
    """One armed tick sampler.  A cancelled sampler never reaches the engine."""

    def __init__(self, engine: CountdownEngine, loop: Any, interval: float) -> None:
        self._engine = engine
        self._loop = loop
        self._interval = interval
        self._handle: Any = None
        self.cancelled = False

    def arm(self) -> None:
        if not self.cancelled:
            self._handle = self._loop.call_later(self._interval, self._fire)

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if self.cancelled:
            return
        self._engine._on_tick(self)


class CountdownEngine:
    """Owns the remaining time, the run phase and the single tick sampler.

    While running, the remaining time is recomputed on every tick from a fixed
    target instant on the engine clock, so irregular tick spacing never
    accumulates error.  Outside of RUNNING the stored remaining time is
    authoritative.  Rejected actions raise a :class:`CountdownError`
    synchronously and leave the state untouched.
    """

    def __init__(
        self,
        default_seconds: int = DEFAULT_SECONDS,
        *,
        loop: Any = None,
        clock: Optional[Callable[[], float]] = None,
        interval: float = DEFAULT_INTERVAL,
        on_frame: Optional[FrameCallback] = None,
    ) -> None:
        if default_seconds < 1:
            raise InvalidDuration(f"default duration must be at least 1 second, got {default_seconds}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._loop = loop
        self._clock: Callable[[], float] = clock if clock is not None else _monotonic
        self._interval = interval
        self._on_frame = on_frame
        self._phase: Phase = Phase.IDLE
        self._total_seconds: int = int(default_seconds)
        self._remaining_seconds: int = int(default_seconds)
        self._target_millis: Optional[float] = None
        self._sampler: Optional[_Sampler] = None
        self._closed = False

    # -- operator actions ----------------------------------------------------

    def configure(self, minutes: float) -> None:
        """Set a new duration of *minutes* and return to IDLE.

        Not allowed while RUNNING; the operator has to pause or reset first.
        """
        self._require_open("configure")
        if isinstance(minutes, bool) or not isinstance(minutes, numbers.Real):
            raise InvalidDuration(f"minutes must be a number, got {minutes!r}")
        if not math.isfinite(minutes) or minutes <= 0:
            raise InvalidDuration(f"minutes must be a finite number > 0, got {minutes!r}")
        total = _round_half_up(minutes * 60)
        if total < 1:
            raise InvalidDuration(f"{minutes!r} minutes is less than one second")
        self._require_state("configure", frozenset({Phase.IDLE, Phase.PAUSED, Phase.EXPIRED}))

        self._cancel_sampler()
        self._total_seconds = total
        self._remaining_seconds = total
        self._target_millis = None
        self._enter(Phase.IDLE)

    def start(self) -> None:
        """Begin counting down the remaining time.

        Calling start() while already running keeps the current target and
        replaces the sampler, so there is never more than one live sampler.
        """
        self._require_open("start")
        if self._phase == Phase.RUNNING:
            self._arm_sampler()
            return
        if self._remaining_seconds <= 0:
            raise NothingToStart("nothing to start: set a duration first")
        self._begin_running()

    def pause(self) -> None:
        """Freeze the remaining time.  Valid only from RUNNING."""
        self._require_open("pause")
        # A final recompute may expire the countdown, in which case the pause
        # is rejected as coming from EXPIRED.
        if self._phase == Phase.RUNNING and not self._sample():
            self._publish()
        self._require_state("pause", frozenset({Phase.RUNNING}))

        self._cancel_sampler()
        self._target_millis = None
        self._enter(Phase.PAUSED)

    def resume(self) -> None:
        """Continue a paused countdown.  Valid only from PAUSED."""
        self._require_open("resume")
        self._require_state("resume", frozenset({Phase.PAUSED}))
        if self._remaining_seconds <= 0:
            raise NothingToStart("nothing to resume: no time remaining")
        self._begin_running()

    def reset(self) -> None:
        """Stop the countdown and show zero.  Valid from any phase."""
        self._require_open("reset")
        self._cancel_sampler()
        self._remaining_seconds = 0
        self._target_millis = None
        self._enter(Phase.IDLE)

    def close(self) -> None:
        """Release the sampler.  Safe to call more than once, and mid-run."""
        self._cancel_sampler()
        if self._closed:
            return
        if self._phase == Phase.RUNNING:
            self._remaining_seconds = self._compute_remaining()
            self._target_millis = None
            self._phase = Phase.PAUSED if self._remaining_seconds > 0 else Phase.EXPIRED
        self._closed = True
        logger.debug("countdown closed with %ss remaining", self._remaining_seconds)

    def __enter__(self) -> CountdownEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- queries -------------------------------------------------------------

    def get_phase(self) -> Phase:
        return self._phase

    def get_remaining(self) -> int:
        """Return the last published remaining time in whole seconds."""
        return self._remaining_seconds

    def get_total(self) -> int:
        return self._total_seconds

    def get_target(self) -> Optional[float]:
        """Target instant in milliseconds on the engine clock, only while RUNNING."""
        return self._target_millis

    def progress_fraction(self) -> float:
        return progress_fraction(self._remaining_seconds, self._total_seconds)

    def is_in_final_quarter(self) -> bool:
        return is_in_final_quarter(self._remaining_seconds, self._total_seconds)

    def has_live_sampler(self) -> bool:
        return self._sampler is not None and not self._sampler.cancelled

    def is_closed(self) -> bool:
        return self._closed

    def frame(self) -> DisplayFrame:
        return DisplayFrame(
            remaining_seconds=self._remaining_seconds,
            phase=self._phase,
            progress_fraction=self.progress_fraction(),
            in_final_quarter=self.is_in_final_quarter(),
        )

    # -- sampling ------------------------------------------------------------

    def _on_tick(self, sampler: _Sampler) -> None:
        if sampler is not self._sampler:
            return
        if self._sample():
            sampler.arm()
        self._publish()

    def _sample(self) -> bool:
        """Recompute from the target; expire at zero.  Return True while running."""
        self._remaining_seconds = self._compute_remaining()
        if self._remaining_seconds > 0:
            return True
        self._cancel_sampler()
        self._target_millis = None
        self._phase = Phase.EXPIRED
        logger.info("countdown expired")
        return False

    def _compute_remaining(self) -> int:
        if self._target_millis is None:
            return self._remaining_seconds
        now_millis = self._clock() * 1000.0
        return max(0, _round_half_up((self._target_millis - now_millis) / 1000.0))

    def _arm_sampler(self) -> None:
        self._cancel_sampler()
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        sampler = _Sampler(self, loop, self._interval)
        self._sampler = sampler
        sampler.arm()

    def _cancel_sampler(self) -> None:
        sampler, self._sampler = self._sampler, None
        if sampler is not None:
            sampler.cancel()

    # -- private helpers -----------------------------------------------------

    def _begin_running(self) -> None:
        target = self._clock() * 1000.0 + self._remaining_seconds * 1000.0
        self._arm_sampler()
        self._target_millis = target
        self._enter(Phase.RUNNING)

    def _enter(self, phase: Phase) -> None:
        self._phase = phase
        logger.debug("countdown %s at %ss of %ss", phase.value, self._remaining_seconds, self._total_seconds)
        self._publish()

    def _publish(self) -> None:
        """Hand the current frame to the display.  Display faults never change state."""
        if self._on_frame is None:
            return
        try:
            self._on_frame(self.frame())
        except Exception:
            logger.exception("display callback failed at %ss remaining", self._remaining_seconds)

    def _require_open(self, method: str) -> None:
        if self._closed:
            raise InvalidStateError(f"{method}() is not valid after close()")

    def _require_state(self, method: str, valid: frozenset[Phase]) -> None:
        """Raise ``InvalidStateError`` if the current phase is not in *valid*."""
        if self._phase not in valid:
            raise InvalidStateError(f"{method}() is not valid from {self._phase.value} state")
