"""
Serial transport - Arduino link over pyserial.

Handles:
- Opening/closing the port
- Background reader thread decoding {key:value} frames
- Handing events to the asyncio loop
- Port reset (buffer flush + DTR pulse, which reboots the Arduino), done
  on the reader thread so the loop never sleeps
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time

import serial

from track_host.comm.protocol import ProtocolError, decode
from track_host.comm.transport import DataCallback, Transport
from track_host.config import (
    ARDUINO_BAUDRATE,
    ARDUINO_PORT,
    RESET_PORTS_COMMAND,
    SERIAL_READ_TIMEOUT,
)

logger = logging.getLogger(__name__)


class SerialTransport(Transport):
    """
    Arduino serial link with background reading.

    Usage:
        transport = SerialTransport(port="/dev/ttyACM0")
        transport.set_on_data_callback(handler)
        transport.start_communication()  # from inside the running loop

        transport.send_data("{get-beam-states:1}")

        transport.stop_communication()  # returns at once
        transport.wait_closed()  # only at shutdown
    """

    def __init__(
        self,
        port: str = ARDUINO_PORT,
        baudrate: int = ARDUINO_BAUDRATE,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.port = port
        self.baudrate = baudrate

        self._loop = loop
        self._callback: DataCallback | None = None
        self._serial: serial.Serial | None = None
        self._thread: threading.Thread | None = None
        self._write_lock = threading.Lock()

        # Per-session signals to the reader thread, which owns its port
        self._stop: threading.Event | None = None
        self._reset: threading.Event | None = None
        self._closing: threading.Thread | None = None

    @property
    def is_connected(self) -> bool:
        return self._serial is not None

    def set_on_data_callback(self, handler: DataCallback) -> None:
        self._callback = handler

    def start_communication(self) -> bool:
        """Open the port and start the reader thread."""
        if self._serial is not None:
            logger.warning("Serial transport already running")
            return True

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        try:
            port = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                timeout=SERIAL_READ_TIMEOUT,
            )
        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to open {self.port}: {e}")
            return False

        self._serial = port
        self._stop = threading.Event()
        self._reset = threading.Event()
        self._thread = threading.Thread(
            target=self._read_loop,
            args=(port, self._stop, self._reset),
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Serial communication started on {self.port}")
        return True

    def stop_communication(self) -> None:
        """
        Signal the reader thread to stop. Returns immediately.

        The reader finishes any pending reset, then closes its port.
        Use wait_closed() to block until it has.
        """
        if self._stop is not None:
            self._stop.set()
        if self._thread is not None:
            self._closing = self._thread

        self._serial = None
        self._thread = None
        self._stop = None
        self._reset = None
        logger.info("Serial communication stopped")

    def wait_closed(self, timeout: float = 2.0) -> bool:
        """Block until the last stopped reader has closed its port."""
        thread = self._closing
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def send_data(self, message: str) -> bool:
        """Write one command line. The reset-ports command is handled locally."""
        if message == RESET_PORTS_COMMAND:
            self._reset_port()
            return True

        port = self._serial
        if not port:
            logger.warning(f"Not connected, dropping {message}")
            return False

        try:
            with self._write_lock:
                port.write(f"{message}\n".encode())
        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to write to {self.port}: {e}")
            return False

        logger.debug(f"Sent: {message}")
        return True

    def _reset_port(self):
        """Ask the reader thread to flush buffers and pulse DTR."""
        if self._reset is None:
            return
        logger.warning(f"Resetting port {self.port}")
        self._reset.set()

    def _pulse_dtr(self, port: serial.Serial):
        """Flush buffers and pulse DTR to reboot the board."""
        try:
            with self._write_lock:
                port.reset_input_buffer()
                port.reset_output_buffer()
                port.dtr = False
                time.sleep(0.1)
                port.dtr = True
        except (serial.SerialException, OSError) as e:
            logger.error(f"Port reset failed on {self.port}: {e}")

    def _read_loop(self, port: serial.Serial, stop: threading.Event, reset: threading.Event):
        """Reader thread: decode lines and hand events to the loop."""
        try:
            while True:
                # A reset requested just before stop still goes out
                if reset.is_set():
                    reset.clear()
                    self._pulse_dtr(port)
                if stop.is_set():
                    break

                try:
                    raw = port.readline()
                except (serial.SerialException, OSError) as e:
                    # Keepalive will notice the silence and reset the link
                    logger.error(f"Serial read error on {self.port}: {e}")
                    stop.wait(SERIAL_READ_TIMEOUT)
                    continue

                if not raw or stop.is_set():
                    continue

                line = raw.decode(errors="ignore")
                try:
                    events = decode(line)
                except ProtocolError as e:
                    logger.warning(str(e))
                    continue

                for event in events:
                    logger.debug(f"Received: {event}")
                    self._dispatch(event, stop)
        finally:
            try:
                port.close()
            except (serial.SerialException, OSError) as e:
                logger.error(f"Error closing {self.port}: {e}")

    def _dispatch(self, event: dict, stop: threading.Event):
        if self._callback is None or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._callback, event)
        except RuntimeError:
            # Loop already closed during shutdown
            stop.set()
