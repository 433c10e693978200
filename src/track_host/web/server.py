"""
Web server - aiohttp application for race status and operator actions.
"""

import asyncio
import logging

from aiohttp import web

from track_host.config import WEB_HOST, WEB_PORT, WS_PUSH_INTERVAL

logger = logging.getLogger(__name__)


class WebServer:
    """
    Status interface server.

    Provides:
    - Race snapshot (REST + WebSocket push)
    - Attract-mode dismissal
    - Runtime parameter tuning
    """

    def __init__(self, controller=None):
        """
        Args:
            controller: Optional Controller instance for live data
        """
        self.controller = controller
        self.app = web.Application()
        self._setup_routes()

    def _setup_routes(self):
        """Configure routes."""
        # Race state
        self.app.router.add_get("/api/status", self.api_status)
        self.app.router.add_post("/api/attract/dismiss", self.api_dismiss_attract)

        # Runtime parameters (timings, serial port)
        self.app.router.add_get("/api/params", self.api_params_get)
        self.app.router.add_post("/api/params", self.api_params_set)

        # WebSocket
        self.app.router.add_get("/ws/state", self.ws_state)

    def _snapshot(self):
        if self.controller is None:
            return None
        return self.controller.snapshot

    async def api_status(self, request):
        """Get current race snapshot."""
        snapshot = self._snapshot()
        if snapshot is None:
            return web.json_response({"error": "Race controller not running"}, status=503)
        return web.json_response(snapshot.to_dict())

    async def api_dismiss_attract(self, request):
        """POST /api/attract/dismiss - Operator leaves attract mode."""
        if self.controller is None:
            return web.json_response({"error": "Race controller not running"}, status=503)

        if not self.controller.dismiss_attract():
            return web.json_response({"ok": False, "error": "Not in attract mode"}, status=409)
        return web.json_response({"ok": True, "state": self._snapshot().to_dict()})

    async def api_params_get(self, request):
        """Get current tunable parameters."""
        if self.controller and getattr(self.controller, "params", None):
            return web.json_response(self.controller.params.to_dict())
        return web.json_response({"error": "Parameters not available"}, status=404)

    async def api_params_set(self, request):
        """Update tunable parameters. Include _save=true to persist to disk."""
        if not self.controller or not getattr(self.controller, "params", None):
            return web.json_response({"error": "Parameters not available"}, status=404)

        try:
            data = await request.json()
        except ValueError:
            return web.json_response({"error": "Expected a JSON object"}, status=400)
        if not isinstance(data, dict):
            return web.json_response({"error": "Expected a JSON object"}, status=400)

        save = data.pop("_save", False)
        self.controller.params.update(**data)

        if save:
            self.controller.params.save()

        return web.json_response(self.controller.params.to_dict())

    async def ws_state(self, request):
        """WebSocket pushing the race snapshot whenever it changes."""
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        logger.info("State WebSocket connected")

        last = None
        try:
            while not ws.closed:
                snapshot = self._snapshot()
                if snapshot is not None and snapshot != last:
                    await ws.send_json(snapshot.to_dict())
                    last = snapshot
                await asyncio.sleep(WS_PUSH_INTERVAL)
        except (ConnectionResetError, ConnectionAbortedError):
            pass
        except Exception as e:
            logger.error(f"State WebSocket error: {e}")
        finally:
            logger.info("State WebSocket disconnected")

        return ws


def create_app(controller=None) -> web.Application:
    """Create the web application."""
    server = WebServer(controller)
    return server.app


async def run_server(controller=None, host=WEB_HOST, port=WEB_PORT):
    """Run the web server."""
    app = create_app(controller)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Web server running at http://{host}:{port}")
    return runner
