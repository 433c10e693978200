"""
Runtime tunable parameters with JSON persistence.

All layers share one Parameters instance. The web interface
can modify values at runtime; changes take effect the next time
the affected timer is armed. Single-threaded asyncio means no locks needed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from track_host.config import ARDUINO_BAUDRATE, ARDUINO_PORT

logger = logging.getLogger(__name__)

PARAMS_FILE = Path(__file__).parent / "params.json"


@dataclass
class Parameters:
    """Runtime tunable parameters."""

    # Serial link (restart communication to apply changes)
    serial_port: str = ARDUINO_PORT
    baudrate: int = ARDUINO_BAUDRATE

    # Keepalive
    keepalive_interval: float = 5.0  # seconds between wake pings
    missed_ping_limit: int = 3  # missed pings before ports are reset

    # Attract mode
    idle_timeout: float = 300.0  # seconds without activity

    # Countdown (stoplight)
    countdown_interval: float = 1.0  # seconds per tick
    go_tick: int = 3  # tick that plays the GO cue; the next one releases

    # Race clock
    race_clock_interval: float = 0.05  # seconds between clock samples
    race_time_cap_ms: int = 10000  # race ends here even if lanes are out

    # "No cars" banner
    banner_duration: float = 5.0  # seconds

    # Results (ribbons)
    results_tick_interval: float = 1.0  # seconds per tick
    results_window_ticks: int = 10  # ticks before the track resets

    def update(self, **kwargs):
        """
        Update parameters from dict (e.g., from web API).

        Every numeric parameter is an interval, count or limit and must be
        positive; bad values are logged and the old value kept.
        """
        for key, value in kwargs.items():
            if hasattr(self, key):
                expected_type = type(getattr(self, key))
                try:
                    new_value = expected_type(value)
                except (TypeError, ValueError):
                    logger.warning(f"Invalid value for {key}: {value}")
                    continue
                if expected_type in (int, float) and not new_value > 0:
                    logger.warning(f"{key} must be positive, got {value}")
                    continue
                setattr(self, key, new_value)

    def save(self, path: Path = PARAMS_FILE):
        """Persist to JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)
        logger.info(f"Parameters saved to {path}")

    @classmethod
    def load(cls, path: Path = PARAMS_FILE) -> Parameters:
        """Load from JSON file, or return defaults."""
        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)
                params = cls()
                params.update(**data)
                logger.info(f"Parameters loaded from {path}")
                return params
            except Exception as e:
                logger.warning(f"Failed to load {path}: {e}, using defaults")
        return cls()

    def to_dict(self) -> dict:
        """Convert to dict for JSON API."""
        return asdict(self)
