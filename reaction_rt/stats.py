"""Running statistics over the recorded latencies of one session."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from psychopy import logging

from .timing import round_half_up


@dataclass(frozen=True)
class StatsSnapshot:
    best: int
    average: int
    count: int
    max_attempts: int

    @property
    def attempts_label(self) -> str:
        return f"{self.count}/{self.max_attempts}"


def snapshot(latencies: Sequence[int], max_attempts: int) -> Optional[StatsSnapshot]:
    """Return best/average/count for ``latencies``, or ``None`` when there are none.

    The average is the half-up rounded mean.  If the mean is not a number
    (only possible with a corrupted sequence) the most recent latency is used
    instead.
    """

    if not latencies:
        return None

    total = sum(latencies)
    try:
        average: int = round_half_up(total / len(latencies))
    except (ValueError, OverflowError):
        logging.warning(
            f"Could not average latencies (sum={total!r}, n={len(latencies)}, "
            f"values={list(latencies)!r}); using most recent value"
        )
        average = latencies[-1]

    return StatsSnapshot(
        best=min(latencies),
        average=average,
        count=len(latencies),
        max_attempts=max_attempts,
    )


__all__ = ["StatsSnapshot", "snapshot"]
