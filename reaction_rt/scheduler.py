"""One-shot timers and the randomized stimulus scheduler.

PsychoPy tasks are driven by a frame loop rather than by an event reactor, so
timers here are *polled*: :meth:`TimerQueue.run_due` is called once per frame
and fires every callback whose due time has passed.  All callbacks run on the
loop's thread, which keeps the trial state single-threaded.
"""
from __future__ import annotations

import heapq
import itertools
import random
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from psychopy import clock as ppclock
from psychopy import logging

from .config import ExperimentConfig


class ContractViolation(RuntimeError):
    """Raised when a caller breaks the timing/scheduling contract."""


class ManualClock:
    """Clock with a PsychoPy-style ``getTime()`` that only moves when told to."""

    def __init__(self, start_s: float = 0.0):
        self._now = float(start_s)

    def getTime(self) -> float:  # noqa: N802 - PsychoPy clock API
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Clock cannot run backwards")
        self._now += seconds

    def advance_ms(self, milliseconds: float) -> None:
        self.advance(milliseconds / 1000.0)


@dataclass(eq=False)
class TimerHandle:
    """Token for a callback queued on a :class:`TimerQueue`."""

    due_ms: float
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> bool:
        """Mark the timer inert. Returns ``False`` if it already fired or was cancelled."""

        if not self.active:
            return False
        self.cancelled = True
        return True


class TimerQueue:
    """Cancellable one-shot timers polled from the frame loop."""

    def __init__(self, clock: Any = None):
        self.clock = clock if clock is not None else ppclock.Clock()
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._order = itertools.count()

    def now_ms(self) -> float:
        return self.clock.getTime() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Queue ``callback`` to run ``delay_ms`` milliseconds from now."""

        handle = TimerHandle(due_ms=self.now_ms() + max(0.0, delay_ms), callback=callback)
        heapq.heappush(self._heap, (handle.due_ms, next(self._order), handle))
        return handle

    def run_due(self) -> int:
        """Fire every due, non-cancelled timer in due order; return how many fired."""

        fired = 0
        now = self.now_ms()
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            # cancellation is only honoured here, at fire time
            if not handle.active:
                continue
            handle.fired = True
            handle.callback()
            fired += 1
        return fired

    def next_due_ms(self) -> Optional[float]:
        for due_ms, _, handle in sorted(self._heap):
            if handle.active:
                return due_ms
        return None

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._heap if handle.active)


@dataclass(eq=False)
class ScheduleHandle:
    """A pending stimulus onset."""

    fire_at_ms: float
    delay_ms: float
    cancelled: bool = False
    fired: bool = False
    timer: Optional[TimerHandle] = field(default=None, repr=False)

    @property
    def live(self) -> bool:
        return not (self.cancelled or self.fired)


class StimulusScheduler:
    """Arm and cancel the randomized delay before the go signal."""

    def __init__(
        self,
        timers: TimerQueue,
        config: ExperimentConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.timers = timers
        self.config = config or ExperimentConfig()
        self.rng = rng or random.Random()
        self._live: Optional[ScheduleHandle] = None

    @property
    def live_handle(self) -> Optional[ScheduleHandle]:
        if self._live is not None and self._live.live:
            return self._live
        return None

    def draw_delay_ms(self) -> float:
        """Return a delay in ``[min_delay, min_delay + delay_range)`` milliseconds.

        The delay is the sum of a coarse integer draw and a continuous jitter
        draw, so it is bounded but not perfectly uniform.
        """

        coarse = self.rng.randrange(int(self.config.delay_coarse_ms))
        jitter = self.rng.random() * self.config.delay_jitter_ms
        return coarse + self.config.min_delay_ms + jitter

    def arm(self, on_fire: Callable[[ScheduleHandle], None]) -> ScheduleHandle:
        """Schedule ``on_fire`` after a random delay and return its handle."""

        if self.live_handle is not None:
            raise ContractViolation("A stimulus schedule is already armed")

        delay = self.draw_delay_ms()
        handle = ScheduleHandle(fire_at_ms=self.timers.now_ms() + delay, delay_ms=delay)

        def _fire() -> None:
            if not handle.live:
                return
            handle.fired = True
            if self._live is handle:
                self._live = None
            on_fire(handle)

        handle.timer = self.timers.call_later(delay, _fire)
        self._live = handle
        logging.debug(f"Stimulus armed for +{delay:.1f} ms")
        return handle

    def cancel(self, handle: ScheduleHandle | None = None) -> bool:
        """Cancel ``handle`` (default: the live one). Inert handles are a no-op."""

        target = handle if handle is not None else self._live
        if target is None or not target.live:
            return False
        target.cancelled = True
        if target.timer is not None:
            target.timer.cancel()
        if self._live is target:
            self._live = None
        logging.debug("Stimulus schedule cancelled")
        return True


__all__ = [
    "ContractViolation",
    "ManualClock",
    "TimerHandle",
    "TimerQueue",
    "ScheduleHandle",
    "StimulusScheduler",
]
