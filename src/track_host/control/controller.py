"""
Main controller - Wires the track host together.

Owns:
1. Runtime parameters
2. Serial transport to the Arduino
3. Race state machine and its timers
4. Optional debug web server
"""

import asyncio
import logging
import signal
from typing import Optional

from track_host.comm import SerialTransport, Transport
from track_host.params import Parameters
from track_host.race import LoggingPresenter, Presenter, RaceSnapshot, RaceStateMachine
from track_host.race.timers import AsyncioScheduler

logger = logging.getLogger(__name__)


class Controller:
    """
    Track host controller.

    Usage:
        controller = Controller()
        asyncio.run(controller.run())
    """

    def __init__(
        self,
        params: Optional[Parameters] = None,
        transport: Optional[Transport] = None,
        presenter: Optional[Presenter] = None,
        web: bool = False,
    ):
        # Runtime parameters (shared, tunable via web)
        self.params = params or Parameters.load()

        self.transport = transport or SerialTransport(
            port=self.params.serial_port, baudrate=self.params.baudrate
        )
        self.presenter = presenter or LoggingPresenter()
        self.web = web

        # Created in run(), needs the running loop
        self.state_machine: Optional[RaceStateMachine] = None

        self._stop_event: Optional[asyncio.Event] = None

    @property
    def snapshot(self) -> Optional[RaceSnapshot]:
        """Latest race state for web access."""
        if self.state_machine is None:
            return None
        return self.state_machine.snapshot()

    def dismiss_attract(self) -> bool:
        if self.state_machine is None:
            return False
        return self.state_machine.dismiss_attract()

    async def run(self):
        """Run until SIGINT/SIGTERM."""
        logger.info("Controller starting...")

        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._shutdown)

        self.state_machine = RaceStateMachine(
            self.transport,
            AsyncioScheduler(loop),
            params=self.params,
            presenter=self.presenter,
        )

        runner = None
        worker = None
        try:
            if not self.transport.start_communication():
                # Keepalive keeps retrying through the stall path
                logger.error("Failed to open Arduino link, waiting for retry")

            if self.web:
                from track_host.web.server import run_server
                runner = await run_server(controller=self)

            self.state_machine.start()
            worker = asyncio.ensure_future(self.state_machine.run())

            await self._stop_event.wait()

        except Exception as e:
            logger.error(f"Controller error: {e}")
            raise
        finally:
            if worker:
                worker.cancel()
                try:
                    await worker
                except asyncio.CancelledError:
                    pass
            if runner:
                await runner.cleanup()
            self._cleanup()

    def _cleanup(self):
        """Cleanup on shutdown."""
        logger.info("Cleaning up...")
        if self.state_machine:
            self.state_machine.stop()
        self.transport.stop_communication()
        if not self.transport.wait_closed():
            logger.warning("Transport did not close in time")
        logger.info("Cleanup complete")

    def _shutdown(self):
        """Handle shutdown signal."""
        logger.info("Shutdown requested")
        if self._stop_event:
            self._stop_event.set()
