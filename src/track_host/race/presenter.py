"""
Presentation hook - what displays and speakers get to see.

The state machine pushes RaceSnapshots and Cues here; a presenter
never writes back into race state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from track_host.race.snapshot import Cue, RaceSnapshot

logger = logging.getLogger(__name__)


class Presenter(ABC):
    """Base class for race displays."""

    @abstractmethod
    def show(self, snapshot: RaceSnapshot) -> None:
        """Called with each new snapshot."""
        ...

    @abstractmethod
    def play(self, cue: Cue) -> None:
        """Called when a sound should start or stop."""
        ...


class LoggingPresenter(Presenter):
    """Logs phase changes, results and cues. Used when no display is attached."""

    def __init__(self):
        self._phase = None

    def show(self, snapshot: RaceSnapshot) -> None:
        if snapshot.phase is self._phase:
            return
        self._phase = snapshot.phase
        logger.info(f"Phase: {snapshot.phase.name}")

        if snapshot.ribbons_visible:
            placed = [lane for lane in snapshot.lanes if lane.placement is not None]
            for lane in sorted(placed, key=lambda lane: lane.placement):
                logger.info(f"  #{lane.placement} lane {lane.number}: {lane.finish_ms / 1000:.3f}s")

    def play(self, cue: Cue) -> None:
        logger.info(f"Cue: {cue.name}")
