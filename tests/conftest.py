"""
Pytest configuration and fixtures for track host tests.
"""
import heapq
import itertools
import os
import sys

# Add source directory to path for imports
sys.path.insert(
    0,
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"),
)

import pytest

from track_host.comm.transport import Transport
from track_host.params import Parameters
from track_host.race import RaceStateMachine
from track_host.race.presenter import Presenter
from track_host.race.timers import Handle, Scheduler


class FakeTransport(Transport):
    """Records outbound messages and channel restarts."""

    def __init__(self):
        self.sent = []
        self.callback = None
        self.starts = 0
        self.stops = 0

    def send_data(self, message):
        self.sent.append(message)
        return True

    def set_on_data_callback(self, handler):
        self.callback = handler

    def start_communication(self):
        self.starts += 1
        return True

    def stop_communication(self):
        self.stops += 1

    def receive(self, key, value="1"):
        """Simulate the Arduino sending {key:value}."""
        self.callback({key: value})

    def count(self, message):
        return self.sent.count(message)


class _ManualHandle(Handle):
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Virtual clock; callbacks only run inside advance()."""

    def __init__(self):
        self._now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def now(self):
        return self._now

    def call_later(self, delay, callback):
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self._now + delay, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds):
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            deadline, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, deadline)
            callback()
        self._now = max(self._now, target)

    def stall(self, seconds):
        """Move the clock without firing anything, like a busy loop."""
        self._now += seconds

    def pending(self):
        return sum(1 for entry in self._queue if not entry[2].cancelled)


class RecordingPresenter(Presenter):
    def __init__(self):
        self.snapshots = []
        self.cues = []

    def show(self, snapshot):
        self.snapshots.append(snapshot)

    def play(self, cue):
        self.cues.append(cue)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def params():
    return Parameters()


@pytest.fixture
def sm(transport, scheduler, params, presenter):
    machine = RaceStateMachine(transport, scheduler, params=params, presenter=presenter)
    machine.start()
    return machine


@pytest.fixture
def ready_sm(sm, transport):
    """State machine with handshake done and attract mode dismissed.

    Keepalive is stopped so long virtual waits do not trip stall recovery;
    test_connection.py covers it.
    """
    transport.receive("arduino-ready", "1")
    assert sm.dismiss_attract()
    sm.connection.stop()
    transport.sent.clear()
    return sm
