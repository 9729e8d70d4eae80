"""Trial state machine for the reaction-time test.

:class:`ReactionTestController` owns the session and the protocol state.  It
consumes user input (``on_engage``/``on_reset``) and timer callbacks, drives
the scheduler, timer and calibration sequencer, and emits declarative render
instructions to a :class:`~reaction_rt.presenter.Presenter`.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from psychopy import logging

from .calibration import CalibrationSequencer
from .config import ExperimentConfig
from .presenter import Presenter
from .scheduler import (
    ContractViolation,
    ScheduleHandle,
    StimulusScheduler,
    TimerHandle,
    TimerQueue,
)
from .stats import StatsSnapshot, snapshot
from .timing import ReactionTimer, classify_average


class TrialState(str, Enum):
    CALIBRATING = "calibrating"
    READY = "ready"
    WAITING = "waiting"
    STIMULUS = "click-now"
    TOO_SOON = "too-soon"
    COMPLETE = "complete"


@dataclass
class TrialSession:
    """Latencies recorded during one run of ``max_attempts`` trials."""

    max_attempts: int = 5
    latencies: List[int] = field(default_factory=list)
    too_soon_count: int = 0

    @property
    def complete(self) -> bool:
        return len(self.latencies) >= self.max_attempts

    def record(self, latency_ms: int) -> None:
        if self.complete:
            raise ContractViolation("Session already holds the maximum number of attempts")
        self.latencies.append(latency_ms)

    def reset(self) -> None:
        self.latencies = []
        self.too_soon_count = 0


class ReactionTestController:
    """Run the calibrate / ready / wait / react protocol for one participant."""

    def __init__(
        self,
        presenter: Presenter,
        config: ExperimentConfig | None = None,
        *,
        timers: TimerQueue | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or ExperimentConfig()
        self.presenter = presenter
        self.timers = timers or TimerQueue()
        self.scheduler = StimulusScheduler(self.timers, self.config, rng)
        self.timer = ReactionTimer(
            self.timers.clock,
            correction_ms=self.config.correction_ms,
            default_ms=self.config.default_latency_ms,
        )
        self.calibration = CalibrationSequencer(
            self.timers,
            presenter,
            on_complete=self._calibration_finished,
            config=self.config,
        )
        self.session = TrialSession(max_attempts=self.config.max_attempts)
        self.state = TrialState.CALIBRATING
        self.stats: Optional[StatsSnapshot] = None
        self._schedule: Optional[ScheduleHandle] = None
        self._summary: Optional[TimerHandle] = None
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Render the empty session and run the calibration sequence."""

        if self._started:
            raise ContractViolation("Controller already started")
        self._started = True
        self._render_session()
        self.calibration.start()

    def shutdown(self) -> None:
        """Release timers and the calibration overlay before the window closes."""

        self.calibration.close()
        self._cancel_pending()

    def _calibration_finished(self) -> None:
        logging.info("Calibration finished; ready for the first trial")
        self._enter_ready(self.config.message("ready"))

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------
    def on_engage(self, timestamp_ms: float | None = None) -> TrialState:
        """Handle a click/tap. ``timestamp_ms`` defaults to the current clock time."""

        now = timestamp_ms if timestamp_ms is not None else self.timers.now_ms()

        if self.state is TrialState.CALIBRATING:
            logging.debug("Engage ignored during calibration")
        elif self.state is TrialState.READY:
            self._begin_waiting()
        elif self.state is TrialState.WAITING:
            self._too_soon()
        elif self.state is TrialState.STIMULUS:
            self._record_response(now)
        elif self.state is TrialState.TOO_SOON:
            self._enter_ready(self.config.message("ready"))
        elif self.state is TrialState.COMPLETE:
            self._cancel_pending()
            self.session.reset()
            self._render_session()
            self._enter_ready(self.config.message("ready"))
        return self.state

    def on_reset(self) -> TrialState:
        """Start over with a clean session (the restart button)."""

        if self.state is TrialState.CALIBRATING:
            logging.debug("Reset ignored during calibration")
            return self.state
        self._cancel_pending()
        self.session.reset()
        self._render_session()
        self._enter_ready(self.config.message("ready"))
        return self.state

    def on_theme_toggle(self) -> TrialState:
        # purely cosmetic; the presenter swaps palettes on its own
        logging.debug("Theme toggle does not affect trial state")
        return self.state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _enter_ready(self, message: str) -> None:
        self.state = TrialState.READY
        self.presenter.render_state(self.state.value, message)

    def _begin_waiting(self) -> None:
        self.session.too_soon_count = 0
        self.state = TrialState.WAITING
        self.presenter.render_state(self.state.value, self.config.message("waiting"))
        self._schedule = self.scheduler.arm(self._stimulus_due)

    def _stimulus_due(self, handle: ScheduleHandle) -> None:
        if self.state is not TrialState.WAITING or handle is not self._schedule:
            logging.debug("Stale stimulus callback ignored")
            return
        self._schedule = None
        self.timer.mark_stimulus_onset()
        self.state = TrialState.STIMULUS
        self.presenter.render_state(self.state.value, self.config.message("stimulus"))

    def _too_soon(self) -> None:
        self.scheduler.cancel(self._schedule)
        self._schedule = None
        self.session.too_soon_count += 1
        self.state = TrialState.TOO_SOON
        self.presenter.render_state(self.state.value, self.config.message("too_soon"))
        logging.info(f"Too soon ({self.session.too_soon_count} this round)")

    def _record_response(self, response_ms: float) -> None:
        sample = self.timer.record_response(response_ms)
        self.session.record(sample.corrected_ms)
        logging.info(
            f"Recorded reaction time: {sample.corrected_ms} ms "
            f"({len(self.session.latencies)}/{self.session.max_attempts})"
        )
        self.presenter.render_latency(sample.corrected_ms)
        self._render_session()

        if not self.session.complete:
            self._enter_ready(self.config.message("ready_next"))
            return

        self.state = TrialState.COMPLETE
        self.presenter.render_state(self.state.value, self.config.message("complete"))
        final = self.stats
        self._summary = self.timers.call_later(
            self.config.post_trial_delay_ms, lambda: self._present_summary(final)
        )

    def _present_summary(self, final: Optional[StatsSnapshot]) -> None:
        self._summary = None
        if final is None:
            return
        band = classify_average(final.average)
        logging.info(f"Session complete: average {final.average} ms ({band.label})")
        self.presenter.render_final_summary(final.average, band.label, band.remark)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _render_session(self) -> None:
        self.stats = snapshot(self.session.latencies, self.session.max_attempts)
        self.presenter.render_stats(self.stats)
        self.presenter.render_history(len(self.session.latencies), self.session.max_attempts)

    def _cancel_pending(self) -> None:
        self.scheduler.cancel(self._schedule)
        self._schedule = None
        self.timer.clear()
        if self._summary is not None:
            self._summary.cancel()
            self._summary = None


__all__ = ["TrialState", "TrialSession", "ReactionTestController"]
