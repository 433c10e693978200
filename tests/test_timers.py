"""
TimerSet tests: one timer per key, cancellation, periodic re-arming.
"""
import asyncio

import pytest

from track_host.race.timers import AsyncioScheduler, TimerKey, TimerSet


@pytest.fixture
def timers(scheduler):
    return TimerSet(scheduler)


def test_one_shot_fires_once(timers, scheduler):
    fired = []
    timers.start_once(TimerKey.BANNER, 5.0, lambda: fired.append(scheduler.now()))
    scheduler.advance(10.0)
    assert fired == [5.0]
    assert not timers.is_active(TimerKey.BANNER)


def test_periodic_fires_each_interval(timers, scheduler):
    ticks = []
    timers.start_periodic(TimerKey.COUNTDOWN, 1.0, lambda: ticks.append(scheduler.now()))
    scheduler.advance(3.5)
    assert ticks == [1.0, 2.0, 3.0]
    assert timers.is_active(TimerKey.COUNTDOWN)


def test_restarting_key_replaces_timer(timers, scheduler):
    ticks = []
    timers.start_periodic(TimerKey.RIBBON, 1.0, lambda: ticks.append("a"))
    scheduler.advance(0.5)
    timers.start_periodic(TimerKey.RIBBON, 1.0, lambda: ticks.append("b"))
    scheduler.advance(2.0)
    assert ticks == ["b", "b"]
    assert scheduler.pending() == 1


def test_cancel(timers, scheduler):
    fired = []
    timers.start_periodic(TimerKey.RACE_CLOCK, 0.05, lambda: fired.append(1))
    assert timers.cancel(TimerKey.RACE_CLOCK)
    assert not timers.cancel(TimerKey.RACE_CLOCK)
    scheduler.advance(1.0)
    assert fired == []


def test_callback_may_cancel_own_timer(timers, scheduler):
    ticks = []

    def on_tick():
        ticks.append(scheduler.now())
        if len(ticks) == 2:
            timers.cancel(TimerKey.COUNTDOWN)

    timers.start_periodic(TimerKey.COUNTDOWN, 1.0, on_tick)
    scheduler.advance(10.0)
    assert ticks == [1.0, 2.0]
    assert scheduler.pending() == 0


def test_cancel_all_subset(timers, scheduler):
    timers.start_once(TimerKey.IDLE, 300.0, lambda: None)
    timers.start_periodic(TimerKey.KEEPALIVE, 5.0, lambda: None)
    timers.start_periodic(TimerKey.COUNTDOWN, 1.0, lambda: None)

    timers.cancel_all(TimerKey.COUNTDOWN, TimerKey.IDLE)
    assert timers.active_keys() == {TimerKey.KEEPALIVE}

    timers.cancel_all()
    assert timers.active_keys() == set()


def test_periodic_rejects_zero_interval(timers):
    with pytest.raises(ValueError):
        timers.start_periodic(TimerKey.RACE_CLOCK, 0, lambda: None)


@pytest.mark.asyncio
async def test_asyncio_scheduler_runs_on_loop():
    timers = TimerSet(AsyncioScheduler(asyncio.get_running_loop()))
    ticks = []
    timers.start_periodic(TimerKey.RACE_CLOCK, 0.01, lambda: ticks.append(1))

    await asyncio.sleep(0.1)
    timers.cancel_all()
    count = len(ticks)
    await asyncio.sleep(0.05)

    assert count >= 3
    assert len(ticks) == count


@pytest.mark.asyncio
async def test_asyncio_scheduler_defaults_to_running_loop():
    scheduler = AsyncioScheduler()
    fired = asyncio.Event()
    scheduler.call_later(0.01, fired.set)

    await asyncio.wait_for(fired.wait(), timeout=1.0)
    assert scheduler.now() == pytest.approx(asyncio.get_running_loop().time(), abs=0.5)


def test_asyncio_scheduler_needs_a_running_loop():
    with pytest.raises(RuntimeError):
        AsyncioScheduler()
