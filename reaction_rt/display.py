"""PsychoPy drawing for the reaction-time test.

:class:`PsychoPyPresenter` implements the render hooks from
:mod:`reaction_rt.presenter` by updating PsychoPy stimuli.  Nothing is drawn
inside the hooks themselves; the experiment's frame loop calls :meth:`draw`
once per frame before flipping the window.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from psychopy import visual

from .config import ExperimentConfig
from .stats import StatsSnapshot

STATE_COLORS: Dict[str, str] = {
    "calibrating": "#2b87d1",
    "ready": "#2b87d1",
    "waiting": "#ce2636",
    "click-now": "#4bdb6a",
    "too-soon": "#f39c12",
    "complete": "#2b87d1",
}

THEMES: Dict[str, Dict[str, str]] = {
    "dark": {
        "background": "#121212",
        "text": "#f0f0f0",
        "muted": "#8a8a8a",
        "dot_idle": "#3a3a3a",
        "dot_active": "#4bdb6a",
        "overlay": "#1e1e1e",
        "bar_track": "#333333",
        "bar_fill": "#2b87d1",
    },
    "light": {
        "background": "#f4f4f4",
        "text": "#1a1a1a",
        "muted": "#666666",
        "dot_idle": "#cccccc",
        "dot_active": "#2b87d1",
        "overlay": "#ffffff",
        "bar_track": "#dddddd",
        "bar_fill": "#2b87d1",
    },
}

BAR_WIDTH: float = 0.8
DOT_SPACING: float = 0.05


class PsychoPyPresenter:
    """Keep PsychoPy stimuli in sync with the controller's render instructions."""

    def __init__(self, win: visual.Window, config: ExperimentConfig | None = None):
        self.win = win
        self.config = config or ExperimentConfig()
        self.theme = self.config.theme if self.config.theme in THEMES else "dark"
        self.calibration_visible = False

        self.title = visual.TextStim(win, text="Reaction Time Test", height=0.05, pos=(0, 0.43))
        self.game_area = visual.Rect(
            win,
            width=0.9,
            height=0.42,
            pos=(0, 0.12),
            fillColor=STATE_COLORS["ready"],
            lineColor=None,
        )
        self.game_text = visual.TextStim(
            win, text="", height=0.05, pos=(0, 0.12), color="white", wrapWidth=0.85
        )
        self.current_time = visual.TextStim(win, text="", height=0.045, pos=(0, -0.14))
        self.stats_text = visual.TextStim(win, text="", height=0.032, pos=(0, -0.23), wrapWidth=1.2)
        self.hint = visual.TextStim(
            win, text=self.config.instructions_text(), height=0.022, pos=(0, -0.44), wrapWidth=1.2
        )
        self.dots: List[visual.Circle] = []
        self._filled = 0
        self._build_dots(self.config.max_attempts)

        self.overlay = visual.Rect(win, width=4.0, height=2.0, pos=(0, 0), lineColor=None)
        self.bar_track = visual.Rect(win, width=BAR_WIDTH, height=0.03, pos=(0, -0.02), lineColor=None)
        self.bar_fill = visual.Rect(win, width=0.001, height=0.03, pos=(-BAR_WIDTH / 2, -0.02), lineColor=None)
        self.calibration_text = visual.TextStim(win, text="", height=0.035, pos=(0, 0.06))
        self.calibration_title = visual.TextStim(win, text="Calibrating", height=0.05, pos=(0, 0.15))

        self._stats: Optional[StatsSnapshot] = None
        self._apply_theme()

    # ------------------------------------------------------------------
    # Render hooks
    # ------------------------------------------------------------------
    def render_state(self, state: str, message: str) -> None:
        self.game_area.fillColor = STATE_COLORS.get(state, STATE_COLORS["ready"])
        if message or state != "complete":
            self.game_text.text = message

    def render_stats(self, stats: Optional[StatsSnapshot]) -> None:
        self._stats = stats
        if stats is None:
            self.stats_text.text = ""
            self.current_time.text = ""
            return
        self.stats_text.text = (
            f"Best: {stats.best} ms     Average: {stats.average} ms     "
            f"Attempts: {stats.attempts_label}"
        )

    def render_history(self, filled: int, total: int) -> None:
        if total != len(self.dots):
            self._build_dots(total)
        self._filled = filled
        self._color_dots()

    def render_latency(self, latency_ms: int) -> None:
        self.current_time.text = f"{latency_ms} ms"

    def render_calibration_progress(self, percent: int, message: str) -> None:
        width = max(0.001, BAR_WIDTH * min(100, max(0, percent)) / 100.0)
        self.bar_fill.width = width
        self.bar_fill.pos = (-BAR_WIDTH / 2 + width / 2, self.bar_track.pos[1])
        self.calibration_text.text = message

    def show_calibration(self, visible: bool) -> None:
        self.calibration_visible = visible
        if visible:
            self.render_calibration_progress(0, "")

    def render_final_summary(self, average_ms: float, label: str, remark: str) -> None:
        self.game_area.fillColor = STATE_COLORS["ready"]
        self.game_text.text = f"Your average: {average_ms} ms\n{remark}"

    # ------------------------------------------------------------------
    # Theme
    # ------------------------------------------------------------------
    def toggle_theme(self) -> str:
        self.theme = "light" if self.theme == "dark" else "dark"
        self._apply_theme()
        return self.theme

    def _apply_theme(self) -> None:
        palette = THEMES[self.theme]
        self.win.color = palette["background"]
        for stim in (self.title, self.current_time, self.stats_text, self.calibration_text, self.calibration_title):
            stim.color = palette["text"]
        self.hint.color = palette["muted"]
        self.overlay.fillColor = palette["overlay"]
        self.bar_track.fillColor = palette["bar_track"]
        self.bar_fill.fillColor = palette["bar_fill"]
        self._color_dots()

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------
    def _build_dots(self, total: int) -> None:
        start_x = -DOT_SPACING * (total - 1) / 2
        self.dots = [
            visual.Circle(
                self.win,
                radius=0.012,
                pos=(start_x + index * DOT_SPACING, -0.31),
                lineColor=None,
                edges=32,
            )
            for index in range(total)
        ]

    def _color_dots(self) -> None:
        palette = THEMES[self.theme]
        for index, dot in enumerate(self.dots):
            dot.fillColor = palette["dot_active"] if index < self._filled else palette["dot_idle"]

    def draw(self) -> None:
        """Draw every visible stimulus; the caller flips the window."""

        if self.calibration_visible:
            self.overlay.draw()
            self.calibration_title.draw()
            self.calibration_text.draw()
            self.bar_track.draw()
            self.bar_fill.draw()
            return

        self.title.draw()
        self.game_area.draw()
        self.game_text.draw()
        self.current_time.draw()
        if self._stats is not None:
            self.stats_text.draw()
        for dot in self.dots:
            dot.draw()
        self.hint.draw()


__all__ = ["PsychoPyPresenter", "STATE_COLORS", "THEMES"]
