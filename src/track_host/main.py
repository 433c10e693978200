#!/usr/bin/env python3
"""
Derby Track Host - Main Entry Point

Usage:
    python -m track_host.main                      # Run the track controller
    python -m track_host.main --web                # Also serve the status API
    python -m track_host.main --port /dev/ttyUSB0  # Override the Arduino port
"""

import argparse
import asyncio
import logging


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Derby Track Host")
    parser.add_argument(
        "--web",
        action="store_true",
        help="Enable status web interface",
    )
    parser.add_argument(
        "--port",
        default=None,
        help="Arduino serial port (default from params.json)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Derby track host starting...")

    from track_host.control import Controller
    from track_host.params import Parameters

    params = Parameters.load()
    if args.port:
        params.update(serial_port=args.port)

    controller = Controller(params=params, web=args.web)
    asyncio.run(controller.run())


if __name__ == "__main__":
    main()
