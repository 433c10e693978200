"""
Results (ribbon) window - holds placements on screen, then resets the track.
"""

from __future__ import annotations

import logging
from typing import Callable

from track_host.params import Parameters
from track_host.race.timers import TimerKey, TimerSet

logger = logging.getLogger(__name__)


class ResultsWindow:
    """
    Counts whole seconds while ribbons are shown.

    on_tick runs after every tick that leaves the window open;
    on_expire runs once the count reaches `results_window_ticks`.
    """

    def __init__(
        self,
        timers: TimerSet,
        params: Parameters,
        on_tick: Callable[[], None] | None = None,
        on_expire: Callable[[], None] | None = None,
    ):
        self.timers = timers
        self.params = params
        self.on_tick = on_tick
        self.on_expire = on_expire

        self._visible = False
        self._count = 0

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def count(self) -> int:
        """Seconds since the ribbons appeared."""
        return self._count

    @property
    def remaining(self) -> int:
        """Ticks left before the track resets."""
        return max(0, self.params.results_window_ticks - self._count)

    def open(self):
        self._visible = True
        self._count = 0
        self.timers.start_periodic(
            TimerKey.RIBBON, self.params.results_tick_interval, self._on_tick
        )
        logger.info(f"Showing results for {self.params.results_window_ticks}s")

    def close(self):
        self.timers.cancel(TimerKey.RIBBON)
        self._visible = False
        self._count = 0

    def _on_tick(self):
        self._count += 1
        if self._count >= self.params.results_window_ticks:
            self.close()
            if self.on_expire:
                self.on_expire()
        elif self.on_tick:
            self.on_tick()
