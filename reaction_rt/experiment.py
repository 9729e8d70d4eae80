"""High-level experiment orchestration for the reaction-time test."""
from __future__ import annotations

import random
from typing import Optional

from psychopy import core, event, logging, visual
from psychopy.hardware import keyboard

from .config import ExperimentConfig
from .display import PsychoPyPresenter
from .inputs import ExperimentAbort, InputRouter
from .machine import ReactionTestController
from .scheduler import TimerQueue
from .serial_button import SerialButton


class ReactionTimeExperiment:
    """Open the window and run the frame loop that feeds the trial controller."""

    def __init__(self, config: ExperimentConfig | None = None):
        self.config = config or ExperimentConfig()
        self.win: Optional[visual.Window] = None
        self.presenter: Optional[PsychoPyPresenter] = None
        self.controller: Optional[ReactionTestController] = None
        self.timers: Optional[TimerQueue] = None

    # ------------------------------------------------------------------
    # Window and devices
    # ------------------------------------------------------------------
    def create_window(self) -> visual.Window:
        """Create the PsychoPy window (windowed and centred in debug mode)."""

        if self.config.debug_mode:
            size = list(self.config.debug_window_size)
            fullscreen = False
        else:
            size = list(self.config.window_size)
            fullscreen = self.config.full_screen
        return visual.Window(
            size=size,
            fullscr=fullscreen,
            screen=self.config.screen_index,
            units=self.config.window_units,
            allowGUI=self.config.debug_mode or not fullscreen,
            waitBlanking=not self.config.debug_mode,
        )

    def _create_serial_button(self) -> SerialButton | None:
        """Instantiate the serial button box if configured."""

        port = self.config.serial_port
        if not port:
            return None
        try:
            return SerialButton(
                port=port,
                baudrate=self.config.serial_baud,
                accepted=self.config.serial_accept or None,
            )
        except (RuntimeError, OSError) as exc:
            logging.warning(f"Could not open serial button on {port}: {exc}")
            return None

    # ------------------------------------------------------------------
    # Experiment entry point
    # ------------------------------------------------------------------
    def run(self) -> None:
        """Execute the calibration sequence and the trial loop until quit."""

        self.win = self.create_window()
        self.presenter = PsychoPyPresenter(self.win, self.config)
        self.timers = TimerQueue(core.Clock())
        self.controller = ReactionTestController(
            self.presenter,
            self.config,
            timers=self.timers,
            rng=random.Random(self.config.seed),
        )
        router = InputRouter(self.controller, self.presenter, self.config)
        mouse = event.Mouse(win=self.win, visible=True)
        kb = keyboard.Keyboard()
        kb.clearEvents()
        serial_button = self._create_serial_button()

        try:
            self.controller.start()
            while True:
                router.poll(mouse=mouse, kb=kb, serial_button=serial_button)
                self.timers.run_due()
                self.presenter.draw()
                self.win.flip()
        except ExperimentAbort as exc:
            logging.info(f"Experiment ended: {exc}")
        finally:
            self.controller.shutdown()
            self.win.close()
            if serial_button:
                serial_button.close()
            logging.flush()

        core.quit()


__all__ = ["ExperimentAbort", "ReactionTimeExperiment"]
