"""
"No cars on the track" banner with auto-dismiss.
"""

from __future__ import annotations

import logging
from typing import Callable

from track_host.params import Parameters
from track_host.race.timers import TimerKey, TimerSet

logger = logging.getLogger(__name__)


class MessageBanner:
    """Transient notice shown when start is pressed with no car armed."""

    def __init__(self, timers: TimerSet, params: Parameters, on_hide: Callable[[], None] | None = None):
        self.timers = timers
        self.params = params
        self.on_hide = on_hide
        self._visible = False

    @property
    def visible(self) -> bool:
        return self._visible

    def show(self):
        """Show the banner and (re)start its dismiss timer."""
        self._visible = True
        self.timers.start_once(TimerKey.BANNER, self.params.banner_duration, self._on_timeout)
        logger.info("No cars on track")

    def hide(self):
        """Hide immediately and cancel the pending dismiss."""
        self.timers.cancel(TimerKey.BANNER)
        self._visible = False

    def _on_timeout(self):
        self._visible = False
        if self.on_hide:
            self.on_hide()
