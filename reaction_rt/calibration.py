"""Staged calibration sequence shown before the first trial.

The sequence is cosmetic: it walks a progress bar from 0 to 100 % with a
handful of stage messages, holds briefly on a completion message and then
hands control to the trial controller.  It carries no timing-accuracy
function, but it must always hand control back, even when torn down halfway.
"""
from __future__ import annotations

from typing import Callable, Optional

from psychopy import logging

from .config import ExperimentConfig
from .presenter import Presenter
from .scheduler import ContractViolation, TimerHandle, TimerQueue


class CalibrationSequencer:
    """Drive the calibration overlay through its timed stages."""

    def __init__(
        self,
        timers: TimerQueue,
        presenter: Presenter,
        on_complete: Callable[[], None],
        config: ExperimentConfig | None = None,
    ):
        self.timers = timers
        self.presenter = presenter
        self.on_complete = on_complete
        self.config = config or ExperimentConfig()
        self.percent = 0
        self.message = ""
        self._started = False
        self._done = False
        self._pending: Optional[TimerHandle] = None

    @property
    def started(self) -> bool:
        return self._started

    @property
    def done(self) -> bool:
        return self._done

    @property
    def _stage_every(self) -> int:
        stages = max(1, len(self.config.calibration_stages))
        return max(1, self.config.calibration_steps // stages)

    def start(self) -> None:
        """Show the overlay and begin stepping; allowed once per sequencer."""

        if self._started:
            raise ContractViolation("Calibration sequence already started")
        self._started = True
        try:
            self.presenter.show_calibration(True)
        except Exception as exc:
            logging.error(f"Calibration error: {exc!r}")
            self._finish()
            return
        self._step(0)

    def close(self) -> None:
        """Tear the sequence down early, still releasing the overlay and signalling completion."""

        if self._started and not self._done:
            logging.info(f"Calibration interrupted at {self.percent}%")
            self._finish()

    def _step(self, index: int) -> None:
        self._pending = None
        if self._done:
            return
        try:
            if index >= self.config.calibration_steps:
                self.percent = 100
                self.message = self.config.calibration_done_message
                self.presenter.render_calibration_progress(self.percent, self.message)
                self._pending = self.timers.call_later(self.config.final_hold_ms, self._finish)
                return

            if index % self._stage_every == 0:
                stage = index // self._stage_every
                if stage < len(self.config.calibration_stages):
                    self.message = self.config.calibration_stages[stage]
            self.percent = index
            self.presenter.render_calibration_progress(index, self.message)
            self._pending = self.timers.call_later(
                self.config.step_interval_ms, lambda: self._step(index + 1)
            )
        except Exception as exc:
            logging.error(f"Calibration error: {exc!r}")
            self._finish()

    def _finish(self) -> None:
        if self._done:
            return
        self._done = True
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        try:
            self.presenter.show_calibration(False)
        except Exception as exc:
            logging.error(f"Calibration error while hiding overlay: {exc!r}")
        self.on_complete()


__all__ = ["CalibrationSequencer"]
