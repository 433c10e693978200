"""
Race state machine - the track's control logic.

Manages race phases and transitions driven by Arduino events and timers:
- AWAITING_HANDSHAKE: No contact with the Arduino yet (or contact lost)
- IDLE: Attract mode
- AWAITING_START: Cars being placed, waiting for the start button
- COUNTDOWN: Stoplight sequence running
- LIVE: Solenoids retracted, race clock running
- RESULTS_DISPLAY: Ribbons shown for a fixed window

Inbound events and timer firings all run on the asyncio loop thread,
one at a time, so race state needs no locking.
"""

from __future__ import annotations

import asyncio
import logging

from track_host.comm.transport import Transport
from track_host.config import (
    KEY_ARDUINO_READY,
    KEY_START_BUTTON,
    LANE_COUNT,
    LANE_FINISH_KEY,
    LANE_START_KEY,
    MESSAGE_GET_BEAMS,
    MESSAGE_RESET_SOLENOIDS,
    MESSAGE_RETRACT_SOLENOIDS,
)
from track_host.params import Parameters
from track_host.race.banner import MessageBanner
from track_host.race.connection import ConnectionManager
from track_host.race.lanes import LaneBoard
from track_host.race.presenter import Presenter
from track_host.race.results import ResultsWindow
from track_host.race.snapshot import Cue, LaneSnapshot, RacePhase, RaceSnapshot
from track_host.race.timers import Scheduler, TimerKey, TimerSet

logger = logging.getLogger(__name__)

# Timers that only make sense inside one race phase
PHASE_TIMERS = (TimerKey.COUNTDOWN, TimerKey.RACE_CLOCK, TimerKey.RIBBON, TimerKey.BANNER)


class RaceStateMachine:
    """
    Coordinates the connection, race sequence, results window and banner.

    Usage:
        sm = RaceStateMachine(transport, AsyncioScheduler(), params)
        sm.start()
        await sm.run()  # drains inbound events until cancelled

    Tests may skip run() and call handle_event() directly.
    """

    def __init__(
        self,
        transport: Transport,
        scheduler: Scheduler,
        params: Parameters | None = None,
        presenter: Presenter | None = None,
        lane_count: int = LANE_COUNT,
    ):
        self.transport = transport
        self.params = params or Parameters()
        self.presenter = presenter
        self.timers = TimerSet(scheduler)
        self.lanes = LaneBoard(lane_count)

        self.phase = RacePhase.AWAITING_HANDSHAKE
        self.countdown = 0
        self.elapsed_ms = 0
        self._race_start: float | None = None

        self.connection = ConnectionManager(
            transport, self.timers, self.params, on_lost=self._on_connection_lost
        )
        self.banner = MessageBanner(self.timers, self.params, on_hide=self._publish)
        self.results = ResultsWindow(
            self.timers,
            self.params,
            on_tick=self._publish,
            on_expire=self._on_results_expired,
        )

        # track-N-start / track-N-finish -> lane number
        self._start_keys = {
            LANE_START_KEY.format(lane=lane.number): lane.number for lane in self.lanes
        }
        self._finish_keys = {
            LANE_FINISH_KEY.format(lane=lane.number): lane.number for lane in self.lanes
        }

        self._queue: asyncio.Queue | None = None
        self._last_snapshot: RaceSnapshot | None = None

        transport.set_on_data_callback(self.submit)

    # --- Lifecycle ---

    def start(self):
        """Start keepalive pinging and publish the initial state."""
        self.connection.start()
        self._publish()
        logger.info("Race controller started")

    def stop(self):
        """Cancel every timer."""
        self.timers.cancel_all()
        logger.info("Race controller stopped")

    async def run(self):
        """Process queued inbound events one at a time until cancelled."""
        self._queue = asyncio.Queue()
        try:
            while True:
                data = await self._queue.get()
                self.handle_data(data)
        finally:
            self._queue = None

    def submit(self, data: dict):
        """Transport callback. Queues the event if run() is active."""
        if self._queue is None:
            self.handle_data(data)
        else:
            self._queue.put_nowait(data)

    # --- Observable state ---

    @property
    def handshake(self) -> bool:
        return self.connection.handshake

    def snapshot(self) -> RaceSnapshot:
        return RaceSnapshot(
            phase=self.phase,
            handshake=self.connection.handshake,
            countdown=self.countdown,
            elapsed_ms=self.elapsed_ms,
            ribbons_visible=self.results.visible,
            ribbon_countdown=self.results.count,
            ribbon_remaining=self.results.remaining if self.results.visible else 0,
            banner_visible=self.banner.visible,
            lanes=tuple(
                LaneSnapshot(
                    number=lane.number,
                    armed=lane.armed,
                    finish_ms=lane.finish_ms,
                    placement=lane.placement,
                    previous_finish_ms=lane.previous_finish_ms,
                )
                for lane in self.lanes
            ),
        )

    # --- Inbound events ---

    def handle_data(self, data: dict):
        for key, value in data.items():
            self.handle_event(key, value)

    def handle_event(self, key: str, value=""):
        """Dispatch one inbound event. Connection effects apply first."""
        value = "" if value is None else str(value).strip()

        if key == KEY_ARDUINO_READY:
            if self.connection.handle_ready(value) and self.phase is RacePhase.AWAITING_HANDSHAKE:
                self._enter_idle()
            self._publish()
            return

        if not self.connection.handshake:
            logger.debug(f"Ignoring {key} before handshake")
            return

        self._reset_idle_timeout()

        if self.phase is RacePhase.IDLE:
            self._wake()
            if key == KEY_START_BUTTON:
                self._publish()
                return

        if key == KEY_START_BUTTON:
            self._on_start_button()
        elif key in self._start_keys:
            self._on_lane_start(self._start_keys[key], value == "1")
        elif key in self._finish_keys:
            self._on_lane_finish(self._finish_keys[key])
        else:
            logger.debug(f"Ignoring unknown event {key}={value}")

        self._publish()

    def dismiss_attract(self) -> bool:
        """Operator leaves attract mode. Returns False if not idle."""
        if not self.connection.handshake or self.phase is not RacePhase.IDLE:
            return False
        self._reset_idle_timeout()
        self._wake()
        self._publish()
        return True

    def _on_start_button(self):
        if self.phase is not RacePhase.AWAITING_START:
            logger.debug(f"Start ignored in {self.phase.name}")
            return

        self.banner.hide()
        if not self.lanes.any_armed:
            self.banner.show()
            return

        self._send(MESSAGE_GET_BEAMS)
        self.lanes.clear_results()
        self.phase = RacePhase.COUNTDOWN
        self.countdown = 1
        self.timers.start_periodic(
            TimerKey.COUNTDOWN, self.params.countdown_interval, self._on_countdown_tick
        )
        logger.info("Transition: AWAITING_START -> COUNTDOWN")
        self._evaluate_countdown()

    def _on_lane_start(self, number: int, armed: bool):
        if self.phase not in (RacePhase.AWAITING_START, RacePhase.COUNTDOWN):
            logger.debug(f"Lane {number} start ignored in {self.phase.name}")
            return

        lane = self.lanes[number]
        lane.armed = armed
        lane.clear_result()
        self.banner.hide()
        logger.debug(f"Lane {number} {'armed' if armed else 'empty'}")

        if self.phase is RacePhase.COUNTDOWN and not self.lanes.any_armed:
            self._abort_countdown()

    def _on_lane_finish(self, number: int):
        if self.phase is not RacePhase.LIVE:
            logger.debug(f"Lane {number} finish ignored in {self.phase.name}")
            return

        elapsed = self._read_clock()
        if elapsed >= self.params.race_time_cap_ms:
            # Clock tick not delivered yet; a finish at or past the cap does not count
            logger.info(f"Lane {number} finish at {elapsed}ms is past the cap, ignoring")
            self.elapsed_ms = elapsed
            self._check_completion()
            return

        if self.lanes.record_finish(number, elapsed):
            logger.info(f"Lane {number} finished in {elapsed}ms")
            self._check_completion()

    # --- Countdown ---

    def _on_countdown_tick(self):
        self.countdown += 1
        self._evaluate_countdown()
        self._publish()

    def _evaluate_countdown(self):
        if not self.lanes.any_armed:
            self._abort_countdown()
            return

        go_tick = self.params.go_tick
        if 0 < self.countdown < go_tick:
            self._play(Cue.WAIT)
        elif self.countdown == go_tick:
            self._play(Cue.GO)
        elif self.countdown > go_tick:
            # Never wait on the stoplight past GO
            self._go_live()

    def _abort_countdown(self):
        self.timers.cancel(TimerKey.COUNTDOWN)
        self.countdown = 0
        self.phase = RacePhase.AWAITING_START
        logger.info("Transition: COUNTDOWN -> AWAITING_START (no cars)")

    def _go_live(self):
        self.timers.cancel(TimerKey.COUNTDOWN)
        self.countdown = 0
        self.phase = RacePhase.LIVE
        self._send(MESSAGE_RETRACT_SOLENOIDS)

        self.elapsed_ms = 0
        self._race_start = self.timers.now()
        self.timers.start_periodic(
            TimerKey.RACE_CLOCK, self.params.race_clock_interval, self._on_race_clock
        )
        self._play(Cue.RACE_LOOP_START)
        logger.info("Transition: COUNTDOWN -> LIVE")

    # --- Live race ---

    def _read_clock(self) -> int:
        if self._race_start is None:
            return 0
        return int(round((self.timers.now() - self._race_start) * 1000))

    def _on_race_clock(self):
        self.elapsed_ms = self._read_clock()
        self._check_completion()
        self._publish()

    def _check_completion(self):
        if self.phase is not RacePhase.LIVE:
            return
        if self.elapsed_ms >= self.params.race_time_cap_ms or self.lanes.all_armed_finished:
            self._complete_race()

    def _complete_race(self):
        self._send(MESSAGE_RESET_SOLENOIDS)
        self.timers.cancel(TimerKey.RACE_CLOCK)
        self._play(Cue.RACE_LOOP_STOP)
        self.elapsed_ms = 0
        self._race_start = None
        self._reset_idle_timeout()

        finished = self.lanes.rank()
        if finished:
            self.lanes.archive_finishes()
            self.phase = RacePhase.RESULTS_DISPLAY
            self.results.open()
            logger.info(
                "Transition: LIVE -> RESULTS_DISPLAY ("
                + ", ".join(f"lane {lane.number}={lane.finish_ms}ms" for lane in finished)
                + ")"
            )
        else:
            self.lanes.clear_results()
            self._send(MESSAGE_GET_BEAMS)
            self.phase = RacePhase.AWAITING_START
            logger.info("Transition: LIVE -> AWAITING_START (no finishers)")

    # --- Results / idle / connection ---

    def _on_results_expired(self):
        self.lanes.clear_results()
        self._send(MESSAGE_GET_BEAMS)
        self.phase = RacePhase.AWAITING_START
        logger.info("Transition: RESULTS_DISPLAY -> AWAITING_START")
        self._publish()

    def _reset_idle_timeout(self):
        self.timers.start_once(TimerKey.IDLE, self.params.idle_timeout, self._on_idle_timeout)

    def _on_idle_timeout(self):
        if not self.connection.handshake:
            return
        logger.info(f"No activity for {self.params.idle_timeout:.0f}s")
        self._leave_phase()
        self._enter_idle()
        self._publish()

    def _on_connection_lost(self):
        self.timers.cancel(TimerKey.IDLE)
        self._leave_phase()
        self.phase = RacePhase.AWAITING_HANDSHAKE
        logger.warning("Transition: -> AWAITING_HANDSHAKE (connection lost)")
        self._publish()

    def _leave_phase(self):
        """Stop whatever the current phase was running."""
        if self.phase is RacePhase.LIVE:
            self._send(MESSAGE_RESET_SOLENOIDS)
            self._play(Cue.RACE_LOOP_STOP)
        self.timers.cancel_all(*PHASE_TIMERS)
        self.results.close()
        self.banner.hide()
        self.countdown = 0
        self.elapsed_ms = 0
        self._race_start = None
        self.lanes.clear_results()

    def _enter_idle(self):
        self.phase = RacePhase.IDLE
        logger.info("Transition: -> IDLE (attract mode)")

    def _wake(self):
        self.lanes.clear()
        self.phase = RacePhase.AWAITING_START
        self._send(MESSAGE_GET_BEAMS)
        logger.info("Transition: IDLE -> AWAITING_START")

    # --- Outputs ---

    def _send(self, message: str):
        self.transport.send_data(message)

    def _play(self, cue: Cue):
        if self.presenter is None:
            return
        try:
            self.presenter.play(cue)
        except Exception:
            logger.exception(f"Presenter failed to play {cue.name}")

    def _publish(self):
        snapshot = self.snapshot()
        if snapshot == self._last_snapshot:
            return
        self._last_snapshot = snapshot
        if self.presenter is None:
            return
        try:
            self.presenter.show(snapshot)
        except Exception:
            logger.exception("Presenter failed to show snapshot")
