"""
Communication layer - serial protocol with the track Arduino.
"""

from .protocol import ProtocolError, decode
from .serial_transport import SerialTransport
from .transport import Transport

__all__ = ["ProtocolError", "decode", "SerialTransport", "Transport"]
