"""Visual reaction-time test built on PsychoPy.

The package is split so that the trial protocol can be reused and tested
without a display: the state machine, scheduler, timer, statistics and
calibration sequence only need :mod:`psychopy.clock` and
:mod:`psychopy.logging`.  Window drawing lives in :mod:`reaction_rt.display`
and the frame loop in :mod:`reaction_rt.experiment`; import those directly
when a screen is available.
"""

from .calibration import CalibrationSequencer
from .config import ExperimentConfig
from .machine import ReactionTestController, TrialSession, TrialState
from .presenter import ConsolePresenter, Presenter
from .scheduler import (
    ContractViolation,
    ManualClock,
    ScheduleHandle,
    StimulusScheduler,
    TimerQueue,
)
from .stats import StatsSnapshot, snapshot
from .timing import (
    SUMMARY_BANDS,
    LatencySample,
    ReactionTimer,
    classify_average,
    compute_latency,
)
from .cli import main as run_experiment

__all__ = [
    "ExperimentConfig",
    "ReactionTestController",
    "TrialSession",
    "TrialState",
    "CalibrationSequencer",
    "StimulusScheduler",
    "ScheduleHandle",
    "TimerQueue",
    "ManualClock",
    "ContractViolation",
    "ReactionTimer",
    "LatencySample",
    "compute_latency",
    "classify_average",
    "SUMMARY_BANDS",
    "StatsSnapshot",
    "snapshot",
    "Presenter",
    "ConsolePresenter",
    "run_experiment",
]
