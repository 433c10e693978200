"""
Arduino message framing.

Both directions use brace-delimited frames:

    {track-1-start:1}
    {get-beam-states:1}

A single serial line may carry several frames back to back.
"""

from __future__ import annotations

import re

_FRAME = re.compile(r"\{([^{}:]+):([^{}]*)\}")


class ProtocolError(ValueError):
    """Raised when a serial line holds no well-formed frame."""


def decode(line: str) -> list[dict[str, str]]:
    """
    Split a serial line into {key: value} events.

    Returns:
        One single-entry dict per frame, in wire order. Empty list for
        a blank line.

    Raises:
        ProtocolError: if the line is not blank but contains no frame.
    """
    line = line.strip()
    if not line:
        return []

    events = [
        {key.strip(): value.strip()}
        for key, value in _FRAME.findall(line)
    ]
    if not events:
        raise ProtocolError(f"Malformed line: {line!r}")
    return events
