"""
Race Layer - What the track is doing.

Contains:
- RaceStateMachine: Phase transitions driven by Arduino events and timers
- ConnectionManager: Handshake and keepalive
- LaneBoard: Per-lane arming, timing and placement
- ResultsWindow / MessageBanner: Timed display windows
- RaceSnapshot: Read-only state for presenters
"""

from .banner import MessageBanner
from .connection import ConnectionManager
from .lanes import Lane, LaneBoard
from .presenter import LoggingPresenter, Presenter
from .results import ResultsWindow
from .snapshot import Cue, LaneSnapshot, RacePhase, RaceSnapshot
from .state_machine import RaceStateMachine
from .timers import AsyncioScheduler, Scheduler, TimerKey, TimerSet

__all__ = [
    "MessageBanner",
    "ConnectionManager",
    "Lane",
    "LaneBoard",
    "LoggingPresenter",
    "Presenter",
    "ResultsWindow",
    "Cue",
    "LaneSnapshot",
    "RacePhase",
    "RaceSnapshot",
    "RaceStateMachine",
    "AsyncioScheduler",
    "Scheduler",
    "TimerKey",
    "TimerSet",
]
