"""
Derby Track Host - race controller for a multi-lane derby track.

Layers:
- comm: Arduino serial link and {key:value} framing
- race: Race phases, timers, lanes and results
- control: Process wiring and shutdown
- web: Status and tuning API
"""
