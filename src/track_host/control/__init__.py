"""
Control Layer - Execution.

Owns the transport, the race state machine and the event loop.
"""

from .controller import Controller

__all__ = ["Controller"]
