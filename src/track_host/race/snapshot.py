"""
Race snapshot - read-only projection for presentation.

RaceSnapshot is everything a display or sound layer may know about
the race. It is rebuilt after each processed event and never mutated.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum, auto


class RacePhase(Enum):
    """Race phase enumeration."""

    AWAITING_HANDSHAKE = auto()
    IDLE = auto()
    AWAITING_START = auto()
    COUNTDOWN = auto()
    LIVE = auto()
    RESULTS_DISPLAY = auto()


class Cue(Enum):
    """Audio cues for the presentation layer."""

    WAIT = auto()  # stoplight red/yellow
    GO = auto()  # stoplight green
    RACE_LOOP_START = auto()
    RACE_LOOP_STOP = auto()


@dataclass(frozen=True)
class LaneSnapshot:
    number: int
    armed: bool
    finish_ms: int | None
    placement: int | None
    previous_finish_ms: int | None


@dataclass(frozen=True)
class RaceSnapshot:
    """Published race state."""

    phase: RacePhase
    handshake: bool
    countdown: int = 0
    elapsed_ms: int = 0
    ribbons_visible: bool = False
    ribbon_countdown: int = 0
    ribbon_remaining: int = 0
    banner_visible: bool = False
    lanes: tuple[LaneSnapshot, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dict for JSON API."""
        data = asdict(self)
        data["phase"] = self.phase.name
        data["lanes"] = [asdict(lane) for lane in self.lanes]
        return data
