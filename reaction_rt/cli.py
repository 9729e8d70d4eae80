"""Command line helpers for running the reaction-time test."""
from __future__ import annotations

import argparse
import random
import sys
from typing import Callable, TextIO

from psychopy import logging

from .config import ExperimentConfig
from .machine import ReactionTestController, TrialState
from .presenter import ConsolePresenter, Presenter
from .scheduler import ManualClock, TimerQueue

DEFAULT_SCREEN = ExperimentConfig.__dataclass_fields__["screen_index"].default
DEFAULT_SERIAL_BAUD = ExperimentConfig.__dataclass_fields__["serial_baud"].default
DEFAULT_SERIAL_ACCEPT = "".join(ExperimentConfig.__dataclass_fields__["serial_accept"].default)
DEFAULT_THEME = ExperimentConfig.__dataclass_fields__["theme"].default

SIMULATED_RT_MEAN_MS: float = 280.0
SIMULATED_RT_SD_MS: float = 40.0
SIMULATION_LIMIT_MS: float = 60_000.0


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser exposing the presentation options."""

    parser = argparse.ArgumentParser(
        description=(
            "Launch the visual reaction-time test: a short calibration sequence "
            "followed by five click-when-green trials."
        )
    )
    parser.add_argument(
        "--windowed",
        action="store_true",
        help="Run in a window instead of full screen.",
    )
    parser.add_argument(
        "--screen",
        type=int,
        default=DEFAULT_SCREEN,
        help="Screen index for the test window (default: %(default)s).",
    )
    parser.add_argument(
        "--theme",
        choices=("dark", "light"),
        default=DEFAULT_THEME,
        help="Initial colour theme; press T during the test to switch (default: %(default)s).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random pre-stimulus delays (default: unseeded).",
    )
    parser.add_argument(
        "--serial-port",
        type=str,
        default=None,
        help=(
            "Serial port of a response button box (e.g., COM3 or /dev/ttyUSB0). "
            "Requires pyserial; if omitted only mouse and keyboard are used."
        ),
    )
    parser.add_argument(
        "--serial-baud",
        type=int,
        default=DEFAULT_SERIAL_BAUD,
        help="Baud rate for the serial button box (default: %(default)s).",
    )
    parser.add_argument(
        "--serial-accept",
        type=str,
        default=DEFAULT_SERIAL_ACCEPT,
        help=(
            "Characters the button box sends for a press (default: %(default)s). "
            "Pass an empty string to treat any byte as a press."
        ),
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Use a small centred window and print debug log messages.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help=(
            "Simulate a complete session with a virtual participant, print every "
            "render instruction, and exit without opening a window."
        ),
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ExperimentConfig:
    return ExperimentConfig(
        full_screen=not args.windowed,
        screen_index=args.screen,
        theme=args.theme,
        seed=args.seed,
        serial_port=args.serial_port,
        serial_baud=args.serial_baud,
        serial_accept=tuple(args.serial_accept),
        debug_mode=args.debug,
    )


def main(argv: list[str] | None = None) -> None:
    """Parse command line options and execute the experiment."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    config = config_from_args(args)
    if config.debug_mode:
        logging.console.setLevel(logging.DEBUG)

    if args.dry_run:
        perform_dry_run(config)
        return

    # imported here so --dry-run works without a display
    from .experiment import ReactionTimeExperiment

    experiment = ReactionTimeExperiment(config)
    experiment.run()


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------

def _run_until(
    timers: TimerQueue,
    clock: ManualClock,
    done: Callable[[], bool],
    *,
    step_ms: float = 1.0,
) -> None:
    """Advance the virtual clock until ``done()`` holds, firing timers on the way."""

    elapsed = 0.0
    timers.run_due()
    while not done():
        if elapsed >= SIMULATION_LIMIT_MS:
            raise RuntimeError("Simulated session stalled")
        clock.advance_ms(step_ms)
        elapsed += step_ms
        timers.run_due()


def simulate_session(
    config: ExperimentConfig,
    presenter: Presenter,
    *,
    seed: int | None = None,
) -> ReactionTestController:
    """Play one full session against ``presenter`` on a virtual clock.

    The simulated participant jumps the gun once on the first trial, then
    responds with normally distributed reaction times.
    """

    participant = random.Random(seed)
    clock = ManualClock()
    timers = TimerQueue(clock)
    controller = ReactionTestController(
        presenter, config, timers=timers, rng=random.Random(seed)
    )
    controller.start()
    _run_until(timers, clock, lambda: controller.state is TrialState.READY)

    jumped = False
    while not controller.session.complete:
        controller.on_engage()
        if not jumped:
            clock.advance_ms(config.min_delay_ms / 2)
            timers.run_due()
            controller.on_engage()
            controller.on_engage()
            controller.on_engage()
            jumped = True
        _run_until(timers, clock, lambda: controller.state is TrialState.STIMULUS)
        clock.advance_ms(max(60.0, participant.gauss(SIMULATED_RT_MEAN_MS, SIMULATED_RT_SD_MS)))
        controller.on_engage()

    _run_until(timers, clock, lambda: timers.pending == 0)
    return controller


def perform_dry_run(config: ExperimentConfig, stream: TextIO | None = None) -> None:
    """Print the render instructions of a simulated session and exit."""

    out = stream or sys.stdout
    print(f"Dry-run: simulating {config.max_attempts} trials (seed={config.seed}).", file=out)
    controller = simulate_session(config, ConsolePresenter(out), seed=config.seed)
    latencies = ", ".join(str(value) for value in controller.session.latencies)
    print(f"Recorded latencies: {latencies}", file=out)
    print("Dry-run complete.", file=out)


if __name__ == "__main__":  # pragma: no cover - module level CLI hook
    main(sys.argv[1:])
