"""Reaction latency measurement and the final-summary rating table."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from psychopy import logging

from .scheduler import ContractViolation

CORRECTION_MS: int = 50
DEFAULT_LATENCY_MS: int = 200


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (``2.5 -> 3``)."""

    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class LatencySample:
    """Result of one completed trial."""

    raw_elapsed_ms: float
    corrected_ms: int
    fallback: bool = False


def measure_latency(
    onset_ms: float,
    response_ms: float,
    *,
    correction_ms: int = CORRECTION_MS,
    default_ms: int = DEFAULT_LATENCY_MS,
) -> LatencySample:
    """Return the corrected latency sample for one onset/response pair.

    ``correction_ms`` is subtracted from the rounded raw latency and the result
    is clamped to at least 1 ms.  A non-finite raw latency is replaced with
    ``default_ms`` so a trial always produces a plausible number.
    """

    raw = response_ms - onset_ms
    if not math.isfinite(raw):
        logging.warning(
            f"Invalid reaction time (onset={onset_ms!r}, response={response_ms!r}); "
            f"using default {default_ms} ms"
        )
        return LatencySample(raw_elapsed_ms=raw, corrected_ms=default_ms, fallback=True)
    corrected = max(1, round_half_up(raw) - correction_ms)
    return LatencySample(raw_elapsed_ms=raw, corrected_ms=corrected)


def compute_latency(
    onset_ms: float,
    response_ms: float,
    *,
    correction_ms: int = CORRECTION_MS,
    default_ms: int = DEFAULT_LATENCY_MS,
) -> int:
    return measure_latency(
        onset_ms, response_ms, correction_ms=correction_ms, default_ms=default_ms
    ).corrected_ms


class ReactionTimer:
    """Capture stimulus-onset and response timestamps on a shared clock."""

    def __init__(
        self,
        clock: Any,
        *,
        correction_ms: int = CORRECTION_MS,
        default_ms: int = DEFAULT_LATENCY_MS,
    ):
        self.clock = clock
        self.correction_ms = correction_ms
        self.default_ms = default_ms
        self._onset_ms: Optional[float] = None

    @property
    def onset_ms(self) -> Optional[float]:
        return self._onset_ms

    def now_ms(self) -> float:
        return self.clock.getTime() * 1000.0

    def mark_stimulus_onset(self) -> float:
        """Record the go-signal time; call this before the visual change is drawn."""

        self._onset_ms = self.now_ms()
        return self._onset_ms

    def record_response(self, response_ms: float | None = None) -> LatencySample:
        """Consume the onset mark and return the latency sample for this response."""

        if self._onset_ms is None:
            raise ContractViolation("Response recorded without a stimulus onset")
        if response_ms is None:
            response_ms = self.now_ms()
        onset, self._onset_ms = self._onset_ms, None
        return measure_latency(
            onset,
            response_ms,
            correction_ms=self.correction_ms,
            default_ms=self.default_ms,
        )

    def clear(self) -> None:
        self._onset_ms = None


# ---------------------------------------------------------------------------
# Final summary rating
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SummaryBand:
    """One row of the rating table: averages strictly below ``limit_ms`` match."""

    limit_ms: float
    label: str
    remark: str


SUMMARY_BANDS: Tuple[SummaryBand, ...] = (
    SummaryBand(180, "extremely fast", "That's extremely fast!"),
    SummaryBand(210, "excellent", "That's excellent!"),
    SummaryBand(240, "very good", "That's very good!"),
    SummaryBand(270, "above average", "That's above average!"),
    SummaryBand(300, "about average", "That's about average."),
    SummaryBand(math.inf, "keep practicing", "Keep practicing!"),
)


def classify_average(average_ms: float) -> SummaryBand:
    """Return the first band whose limit is strictly greater than ``average_ms``."""

    for band in SUMMARY_BANDS:
        if average_ms < band.limit_ms:
            return band
    return SUMMARY_BANDS[-1]


__all__ = [
    "CORRECTION_MS",
    "DEFAULT_LATENCY_MS",
    "LatencySample",
    "ReactionTimer",
    "SummaryBand",
    "SUMMARY_BANDS",
    "classify_average",
    "compute_latency",
    "measure_latency",
    "round_half_up",
]
