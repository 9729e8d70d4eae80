"""Render hooks consumed by the presentation layer.

The trial controller never touches window objects directly; it calls the
methods below and the presenter decides how to draw them.  The PsychoPy
implementation lives in :mod:`reaction_rt.display`.
"""
from __future__ import annotations

import sys
from typing import Optional, Protocol, TextIO

from .stats import StatsSnapshot


class Presenter(Protocol):
    def render_state(self, state: str, message: str) -> None: ...

    def render_stats(self, stats: Optional[StatsSnapshot]) -> None: ...

    def render_history(self, filled: int, total: int) -> None: ...

    def render_latency(self, latency_ms: int) -> None: ...

    def render_calibration_progress(self, percent: int, message: str) -> None: ...

    def show_calibration(self, visible: bool) -> None: ...

    def render_final_summary(self, average_ms: float, label: str, remark: str) -> None: ...


class ConsolePresenter:
    """Print every render instruction as a line of text (used by ``--dry-run``)."""

    def __init__(self, stream: TextIO | None = None, *, show_progress: bool = False):
        self.stream = stream or sys.stdout
        self.show_progress = show_progress
        self._last_stage = ""

    def _emit(self, line: str) -> None:
        print(line, file=self.stream)

    def render_state(self, state: str, message: str) -> None:
        self._emit(f"[{state:<11}] {message}".rstrip())

    def render_stats(self, stats: Optional[StatsSnapshot]) -> None:
        if stats is None:
            self._emit("      stats : --")
            return
        self._emit(
            f"      stats : best={stats.best} ms | average={stats.average} ms "
            f"| attempts={stats.attempts_label}"
        )

    def render_history(self, filled: int, total: int) -> None:
        dots = "".join("*" if index < filled else "." for index in range(total))
        self._emit(f"      trials: {dots}")

    def render_latency(self, latency_ms: int) -> None:
        self._emit(f"      result: {latency_ms} ms")

    def render_calibration_progress(self, percent: int, message: str) -> None:
        # one line per stage unless every step was requested
        if self.show_progress or message != self._last_stage:
            self._emit(f"[calibrate  ] {percent:3d}% {message}")
        self._last_stage = message

    def show_calibration(self, visible: bool) -> None:
        self._emit(f"[calibrate  ] overlay {'shown' if visible else 'hidden'}")

    def render_final_summary(self, average_ms: float, label: str, remark: str) -> None:
        self._emit(f"[summary    ] Your average: {average_ms} ms | {remark} ({label})")


__all__ = ["Presenter", "ConsolePresenter"]
