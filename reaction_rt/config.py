"""Configuration helpers for the visual reaction-time test.

The :class:`ExperimentConfig` dataclass stores the protocol constants and the
presentation options for running the PsychoPy reaction-time task.  Keeping
these values in a separate module makes it easy to discover what the test
does without reading the state machine or the drawing code.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass
class ExperimentConfig:
    """Container for protocol constants and runtime options."""

    # Trial protocol (milliseconds)
    max_attempts: int = 5
    min_delay_ms: float = 1000.0
    delay_range_ms: float = 2500.0
    delay_jitter_ms: float = 500.0
    correction_ms: int = 50
    default_latency_ms: int = 200
    post_trial_delay_ms: float = 500.0

    # Calibration sequence
    calibration_steps: int = 100
    step_interval_ms: float = 20.0
    final_hold_ms: float = 800.0
    calibration_stages: Tuple[str, ...] = (
        "Testing browser rendering...",
        "Measuring display refresh rate...",
        "Optimizing visual elements...",
        "Testing input latency...",
        "Finalizing setup...",
    )
    calibration_done_message: str = "Calibration complete!"

    state_messages: Dict[str, str] = field(
        default_factory=lambda: {
            "ready": "Click to start!",
            "ready_next": "Click to keep going!",
            "waiting": "Wait for green...",
            "stimulus": "CLICK NOW!",
            "too_soon": "Too soon! Click to try again.",
            "complete": "",
        }
    )

    # Window
    full_screen: bool = True
    window_size: Tuple[int, int] = (1280, 720)
    screen_index: int = 0
    window_units: str = "height"
    theme: str = "dark"

    # Input
    engage_keys: Tuple[str, ...] = ("space",)
    reset_keys: Tuple[str, ...] = ("r",)
    theme_keys: Tuple[str, ...] = ("t",)
    quit_keys: Tuple[str, ...] = ("escape",)
    serial_port: Optional[str] = None
    serial_baud: int = 9600
    # characters the button box sends for a press; empty accepts any byte
    serial_accept: Tuple[str, ...] = ("1",)

    seed: Optional[int] = None
    debug_mode: bool = False
    debug_window_size: Tuple[int, int] = (1024, 768)

    @property
    def delay_coarse_ms(self) -> float:
        """Width of the integer part of the random pre-stimulus delay."""

        return self.delay_range_ms - self.delay_jitter_ms

    def message(self, key: str) -> str:
        return self.state_messages.get(key, "")

    def instructions_text(self) -> str:
        """Return an instruction string for the on-screen hint line."""

        engage = " / ".join(self.engage_keys)
        return (
            f"Click the box (or press {engage}) when it turns green. "
            f"{self.max_attempts} attempts per test. "
            f"{self.reset_keys[0].upper()} = restart, "
            f"{self.theme_keys[0].upper()} = theme, "
            f"{self.quit_keys[0].upper()} = quit"
        )


__all__ = ["ExperimentConfig"]
