"""Per-frame input routing for the reaction-time test.

The router turns the keyboard, mouse and serial-button state polled in one
frame into controller events.  It only needs objects with PsychoPy's polling
API, so it does not import :mod:`psychopy.visual`.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import ExperimentConfig
from .machine import ReactionTestController
from .serial_button import SerialButton

if TYPE_CHECKING:
    from psychopy.hardware.keyboard import Keyboard
    from .display import PsychoPyPresenter
else:  # pragma: no cover - used only for static analysis fallbacks
    Keyboard = Any
    PsychoPyPresenter = Any


class ExperimentAbort(Exception):
    """Raised when the participant issues a quit command (e.g., presses ESC)."""


class InputRouter:
    """Forward one frame of input to the controller in arrival order."""

    def __init__(
        self,
        controller: ReactionTestController,
        presenter: PsychoPyPresenter,
        config: ExperimentConfig | None = None,
    ):
        self.controller = controller
        self.presenter = presenter
        self.config = config or controller.config
        self._mouse_down = False

    def key_list(self) -> list[str]:
        return [
            *self.config.engage_keys,
            *self.config.reset_keys,
            *self.config.theme_keys,
            *self.config.quit_keys,
        ]

    def poll(
        self,
        *,
        mouse: Any,
        kb: Keyboard,
        serial_button: SerialButton | None = None,
    ) -> None:
        """Dispatch this frame's keys, mouse click and serial press."""

        now = self.controller.timers.now_ms()

        for key in kb.getKeys(self.key_list(), waitRelease=False):
            if key.name in self.config.quit_keys:
                raise ExperimentAbort(f"Quit key '{key.name}' pressed")
            if key.name in self.config.engage_keys:
                self.controller.on_engage(now)
            elif key.name in self.config.reset_keys:
                self.controller.on_reset()
            elif key.name in self.config.theme_keys:
                self.presenter.toggle_theme()
                self.controller.on_theme_toggle()

        # edge-triggered: a held button engages once
        pressed = bool(mouse.getPressed()[0])
        if pressed and not self._mouse_down and self.presenter.game_area.contains(mouse):
            self.controller.on_engage(now)
        self._mouse_down = pressed

        # a burst of bytes in one frame is a single press
        if serial_button is not None and serial_button.poll() > 0:
            self.controller.on_engage(now)


__all__ = ["ExperimentAbort", "InputRouter"]
