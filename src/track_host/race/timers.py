"""
Cooperative timers keyed by purpose.

Every timer the race controller uses has a TimerKey. Starting a key
replaces whatever timer held it, so there is never more than one
countdown, race clock, etc. running at once.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Callable

logger = logging.getLogger(__name__)


class TimerKey(Enum):
    """Logical purpose of a timer."""

    KEEPALIVE = auto()
    IDLE = auto()
    COUNTDOWN = auto()
    RACE_CLOCK = auto()
    BANNER = auto()
    RIBBON = auto()


class Handle(ABC):
    """Cancellable scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        ...


class Scheduler(ABC):
    """Clock and one-shot callback source."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        ...


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio loop (construct inside it)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        # asyncio.TimerHandle already has cancel()
        return self._loop.call_later(delay, callback)


class _Timer:
    """One-shot or periodic timer on top of a Scheduler."""

    def __init__(self, scheduler: Scheduler, interval: float, callback, periodic: bool):
        self._scheduler = scheduler
        self._interval = interval
        self._callback = callback
        self._periodic = periodic
        self._cancelled = False
        self._deadline = scheduler.now() + interval
        self._handle = scheduler.call_later(interval, self._fire)

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self):
        self._cancelled = True
        self._handle.cancel()

    def _fire(self):
        if self._cancelled:
            return

        if self._periodic:
            # Re-arm before the callback so the callback may cancel us
            self._deadline += self._interval
            delay = max(0.0, self._deadline - self._scheduler.now())
            self._handle = self._scheduler.call_later(delay, self._fire)
        else:
            self._cancelled = True

        self._callback()


class TimerSet:
    """
    Timers owned by one component, at most one per TimerKey.

    Usage:
        timers = TimerSet(AsyncioScheduler())
        timers.start_periodic(TimerKey.COUNTDOWN, 1.0, on_tick)
        timers.cancel(TimerKey.COUNTDOWN)
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._timers: dict[TimerKey, _Timer] = {}

    def now(self) -> float:
        return self.scheduler.now()

    def start_once(self, key: TimerKey, delay: float, callback: Callable[[], None]):
        """Arm a one-shot timer, replacing any timer under the same key."""
        self._start(key, delay, callback, periodic=False)

    def start_periodic(self, key: TimerKey, interval: float, callback: Callable[[], None]):
        """Arm a repeating timer, replacing any timer under the same key."""
        if interval <= 0:
            raise ValueError(f"{key.name} interval must be positive, got {interval}")
        self._start(key, interval, callback, periodic=True)

    def cancel(self, key: TimerKey) -> bool:
        """Cancel the timer under key. Returns True if one was active."""
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        was_active = timer.active
        timer.cancel()
        return was_active

    def cancel_all(self, *keys: TimerKey):
        """Cancel the given keys, or every timer if none are given."""
        for key in keys or tuple(self._timers):
            self.cancel(key)

    def is_active(self, key: TimerKey) -> bool:
        timer = self._timers.get(key)
        return timer is not None and timer.active

    def active_keys(self) -> set[TimerKey]:
        return {key for key, timer in self._timers.items() if timer.active}

    def _start(self, key, interval, callback, periodic):
        self.cancel(key)
        self._timers[key] = _Timer(self.scheduler, interval, callback, periodic)
        logger.debug(f"Timer {key.name} armed ({interval}s, periodic={periodic})")
