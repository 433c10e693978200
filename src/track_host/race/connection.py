"""
Connection manager - Arduino liveness.

Handles:
- Periodic wake pings
- Handshake on "arduino-ready"
- Stall recovery (port reset + channel restart) after missed pings
"""

from __future__ import annotations

import json
import logging
from typing import Callable

from track_host.comm.transport import Transport
from track_host.config import RESET_PORTS_COMMAND, WAKE_ARDUINO
from track_host.params import Parameters
from track_host.race.timers import TimerKey, TimerSet

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Keepalive and handshake bookkeeping.

    Every keepalive interval a wake payload is sent and a ping marked
    outstanding. An interval that fires while the previous ping is still
    unanswered counts as missed; after `missed_ping_limit` misses in a row
    the handshake is dropped and the transport restarted.
    """

    def __init__(
        self,
        transport: Transport,
        timers: TimerSet,
        params: Parameters,
        on_lost: Callable[[], None] | None = None,
    ):
        self.transport = transport
        self.timers = timers
        self.params = params
        self.on_lost = on_lost

        self._handshake = False
        self._ping_outstanding = False
        self._missed_pings = 0

    @property
    def handshake(self) -> bool:
        return self._handshake

    @property
    def ping_outstanding(self) -> bool:
        return self._ping_outstanding

    @property
    def missed_pings(self) -> int:
        return self._missed_pings

    def start(self):
        """Begin pinging."""
        self.timers.start_periodic(
            TimerKey.KEEPALIVE, self.params.keepalive_interval, self._on_keepalive
        )

    def stop(self):
        self.timers.cancel(TimerKey.KEEPALIVE)

    def handle_ready(self, value: str) -> bool:
        """
        Process an "arduino-ready" event.

        Returns:
            True if the handshake was established by this event.
        """
        if not value:
            return False

        self._ping_outstanding = False
        self._missed_pings = 0

        if self._handshake:
            return False
        self._handshake = True
        logger.info("Handshake established")
        return True

    def _on_keepalive(self):
        if self._ping_outstanding:
            self._missed_pings += 1
            logger.debug(f"Missed ping ({self._missed_pings}/{self.params.missed_ping_limit})")
            if self._missed_pings >= self.params.missed_ping_limit:
                self._recover()

        self._ping_outstanding = True
        self.transport.send_data(json.dumps(WAKE_ARDUINO))

    def _recover(self):
        """Reset the ports and restart the channel."""
        logger.warning(
            f"No reply to {self._missed_pings} pings, resetting ports and restarting communication"
        )
        self._handshake = False
        self._missed_pings = 0
        self._ping_outstanding = False

        self.transport.send_data(RESET_PORTS_COMMAND)
        self.transport.stop_communication()
        if not self.transport.start_communication():
            logger.error("Failed to restart communication, will retry")

        if self.on_lost:
            self.on_lost()
