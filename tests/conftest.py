"""Shared fakes for the reaction-time tests.

The controller only talks to a presenter and a clock, so the tests run the
real protocol code against a recording presenter and a manual clock; no
PsychoPy window is opened.
"""
from __future__ import annotations

import random
from typing import Any, Callable, List, Optional, Tuple

import pytest

from reaction_rt.config import ExperimentConfig
from reaction_rt.machine import ReactionTestController, TrialState
from reaction_rt.scheduler import ManualClock, TimerQueue
from reaction_rt.stats import StatsSnapshot


class RecordingPresenter:
    """Presenter that stores every render call as ``(name, args)``."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def render_state(self, state: str, message: str) -> None:
        self._record("render_state", state, message)

    def render_stats(self, stats: Optional[StatsSnapshot]) -> None:
        self._record("render_stats", stats)

    def render_history(self, filled: int, total: int) -> None:
        self._record("render_history", filled, total)

    def render_latency(self, latency_ms: int) -> None:
        self._record("render_latency", latency_ms)

    def render_calibration_progress(self, percent: int, message: str) -> None:
        self._record("render_calibration_progress", percent, message)

    def show_calibration(self, visible: bool) -> None:
        self._record("show_calibration", visible)

    def render_final_summary(self, average_ms: float, label: str, remark: str) -> None:
        self._record("render_final_summary", average_ms, label, remark)

    # helpers -----------------------------------------------------------
    def named(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def last(self, name: str) -> Tuple[Any, ...]:
        matches = self.named(name)
        assert matches, f"{name} was never called"
        return matches[-1]

    def states(self) -> List[str]:
        return [args[0] for args in self.named("render_state")]


def pump(timers: TimerQueue, clock: ManualClock, ms: float, step_ms: float = 1.0) -> None:
    """Advance ``clock`` by ``ms`` in small steps, firing due timers after each."""

    elapsed = 0.0
    timers.run_due()
    while elapsed < ms:
        clock.advance_ms(step_ms)
        elapsed += step_ms
        timers.run_due()


def pump_until(
    timers: TimerQueue,
    clock: ManualClock,
    done: Callable[[], bool],
    limit_ms: float = 10_000.0,
) -> None:
    elapsed = 0.0
    timers.run_due()
    while not done():
        assert elapsed < limit_ms, "condition not reached in time"
        clock.advance_ms(1.0)
        elapsed += 1.0
        timers.run_due()


@pytest.fixture
def config() -> ExperimentConfig:
    return ExperimentConfig()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def timers(clock: ManualClock) -> TimerQueue:
    return TimerQueue(clock)


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def controller(presenter, config, timers) -> ReactionTestController:
    return ReactionTestController(presenter, config, timers=timers, rng=random.Random(1234))


@pytest.fixture
def ready_controller(controller, timers, clock) -> ReactionTestController:
    """A controller whose calibration has finished."""

    controller.start()
    pump_until(timers, clock, lambda: controller.state is TrialState.READY)
    return controller


def play_trial(
    controller: ReactionTestController,
    timers: TimerQueue,
    clock: ManualClock,
    raw_ms: float,
) -> None:
    """Engage from READY, wait for the go signal and respond ``raw_ms`` after onset."""

    assert controller.state is TrialState.READY
    controller.on_engage()
    pump_until(timers, clock, lambda: controller.state is TrialState.STIMULUS)
    onset = controller.timer.onset_ms
    assert onset is not None
    controller.on_engage(onset + raw_ms)
