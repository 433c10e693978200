"""
Configuration constants for the derby track host.

All fixed protocol values and hardware defaults in one place.
Tunable timings live in params.py.
"""

# =============================================================================
# HARDWARE PORTS
# =============================================================================

# Arduino (beam sensors, start button, solenoids)
ARDUINO_PORT = "/dev/ttyACM0"
ARDUINO_BAUDRATE = 115200
SERIAL_READ_TIMEOUT = 0.1  # seconds, reader thread poll

# =============================================================================
# TRACK
# =============================================================================

LANE_COUNT = 3

# =============================================================================
# PROTOCOL - inbound keys (Arduino -> host)
# =============================================================================

KEY_ARDUINO_READY = "arduino-ready"
KEY_START_BUTTON = "start-button-pressed"
LANE_START_KEY = "track-{lane}-start"  # value "1" = car present, "0" = empty
LANE_FINISH_KEY = "track-{lane}-finish"

# =============================================================================
# PROTOCOL - outbound commands (host -> Arduino)
# =============================================================================

MESSAGE_GET_BEAMS = "{get-beam-states:1}"
MESSAGE_RESET_SOLENOIDS = "{retract-solenoids:0}"
MESSAGE_RETRACT_SOLENOIDS = "{retract-solenoids:1}"
WAKE_ARDUINO = {"message": "wake-arduino", "value": "1"}

# Handled by the transport itself, never written to the wire
RESET_PORTS_COMMAND = "{reset-ports:1}"

# =============================================================================
# WEB INTERFACE
# =============================================================================

WEB_HOST = "0.0.0.0"
WEB_PORT = 8080
WS_PUSH_INTERVAL = 0.1  # seconds
