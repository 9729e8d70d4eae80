from __future__ import annotations

import random

import pytest

from reaction_rt.config import ExperimentConfig
from reaction_rt.scheduler import (
    ContractViolation,
    ManualClock,
    StimulusScheduler,
    TimerQueue,
)

from conftest import pump


# ────────────────────────────────────────────────────────────────────────────
# TimerQueue
# ────────────────────────────────────────────────────────────────────────────


def test_timers_fire_in_due_order(clock, timers):
    fired = []
    timers.call_later(30, lambda: fired.append("late"))
    timers.call_later(10, lambda: fired.append("early"))
    timers.call_later(20, lambda: fired.append("middle"))

    clock.advance_ms(50)
    assert timers.run_due() == 3
    assert fired == ["early", "middle", "late"]


def test_timer_not_fired_before_due(clock, timers):
    fired = []
    timers.call_later(100, lambda: fired.append(1))
    clock.advance_ms(90)
    timers.run_due()
    assert fired == []
    clock.advance_ms(20)
    timers.run_due()
    assert fired == [1]


def test_cancelled_timer_never_fires(clock, timers):
    fired = []
    handle = timers.call_later(10, lambda: fired.append(1))
    assert handle.cancel() is True
    clock.advance_ms(20)
    timers.run_due()
    assert fired == []
    assert timers.pending == 0


def test_cancel_after_fire_is_noop(clock, timers):
    handle = timers.call_later(10, lambda: None)
    clock.advance_ms(11)
    timers.run_due()
    assert handle.fired
    assert handle.cancel() is False
    assert not handle.cancelled


def test_timer_fires_once(clock, timers):
    fired = []
    timers.call_later(5, lambda: fired.append(1))
    clock.advance_ms(6)
    timers.run_due()
    timers.run_due()
    clock.advance_ms(100)
    timers.run_due()
    assert fired == [1]


def test_next_due_skips_cancelled(clock, timers):
    first = timers.call_later(10, lambda: None)
    timers.call_later(40, lambda: None)
    first.cancel()
    assert timers.next_due_ms() == pytest.approx(40)


def test_manual_clock_rejects_negative_advance():
    clock = ManualClock()
    with pytest.raises(ValueError):
        clock.advance(-1)


# ────────────────────────────────────────────────────────────────────────────
# StimulusScheduler
# ────────────────────────────────────────────────────────────────────────────


def test_delays_stay_in_range():
    config = ExperimentConfig()
    scheduler = StimulusScheduler(TimerQueue(ManualClock()), config, random.Random(7))
    delays = [scheduler.draw_delay_ms() for _ in range(10_000)]
    assert min(delays) >= 1000
    assert max(delays) < 3500


def test_repeated_arm_and_cancel_never_double_arms(clock, timers):
    scheduler = StimulusScheduler(timers, ExperimentConfig(), random.Random(3))
    for _ in range(10_000):
        handle = scheduler.arm(lambda h: None)
        assert 1000 <= handle.delay_ms < 3500
        assert handle.fire_at_ms == pytest.approx(clock.getTime() * 1000 + handle.delay_ms)
        assert scheduler.cancel(handle) is True
        assert scheduler.live_handle is None


def test_arming_twice_is_rejected(timers):
    scheduler = StimulusScheduler(timers, rng=random.Random(1))
    scheduler.arm(lambda h: None)
    with pytest.raises(ContractViolation):
        scheduler.arm(lambda h: None)
    assert timers.pending == 1


def test_arm_fires_callback_with_handle(clock, timers):
    scheduler = StimulusScheduler(timers, rng=random.Random(1))
    seen = []
    handle = scheduler.arm(seen.append)
    pump(timers, clock, 3600)
    assert seen == [handle]
    assert handle.fired and not handle.live
    assert scheduler.live_handle is None


def test_rearm_allowed_after_fire(clock, timers):
    scheduler = StimulusScheduler(timers, rng=random.Random(2))
    scheduler.arm(lambda h: None)
    pump(timers, clock, 3600)
    scheduler.arm(lambda h: None)
    assert scheduler.live_handle is not None


def test_cancelled_handle_callback_is_noop(clock, timers):
    scheduler = StimulusScheduler(timers, rng=random.Random(5))
    seen = []
    handle = scheduler.arm(seen.append)
    scheduler.cancel(handle)
    # an in-flight callback that slipped past the queue must still do nothing
    handle.timer.callback()
    pump(timers, clock, 4000)
    assert seen == []


def test_cancel_inert_handles_is_noop(clock, timers):
    scheduler = StimulusScheduler(timers, rng=random.Random(5))
    assert scheduler.cancel() is False
    handle = scheduler.arm(lambda h: None)
    assert scheduler.cancel(handle) is True
    assert scheduler.cancel(handle) is False
    fired = scheduler.arm(lambda h: None)
    pump(timers, clock, 3600)
    assert scheduler.cancel(fired) is False
