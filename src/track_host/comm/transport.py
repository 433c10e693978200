"""
Transport contract between the race state machine and the hardware link.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

DataCallback = Callable[[dict], None]


class Transport(ABC):
    """
    Opaque duplex channel to the track hardware.

    Inbound events are delivered to the registered callback as single-entry
    dicts ({"track-1-start": "1"}) on the event loop thread. Outbound
    messages are preformatted command strings.
    """

    @abstractmethod
    def send_data(self, message: str) -> bool:
        """Send one command string. Returns True if it was written."""
        ...

    @abstractmethod
    def set_on_data_callback(self, handler: DataCallback) -> None:
        """Register the handler for inbound events."""
        ...

    @abstractmethod
    def start_communication(self) -> bool:
        """Open the channel. Returns True on success."""
        ...

    @abstractmethod
    def stop_communication(self) -> None:
        """Close the channel without blocking. Safe to call when already closed."""
        ...

    def wait_closed(self, timeout: float = 2.0) -> bool:
        """Block until a stopped channel has released its resources."""
        return True
