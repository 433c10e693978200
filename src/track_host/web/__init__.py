"""
Web Layer - Status and operator interface.

Provides:
- Race snapshot as JSON and over WebSocket
- Attract-mode dismissal for the operator
- Parameter tuning
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
