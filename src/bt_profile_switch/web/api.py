"""REST and WebSocket endpoints for the panel page."""

import asyncio
import logging
from typing import TYPE_CHECKING

from aiohttp import web
from aiohttp.web import WebSocketResponse

if TYPE_CHECKING:
    from .server import WebServer

logger = logging.getLogger(__name__)


def _no_indicator() -> web.Response:
    return web.json_response({"error": "indicator is not enabled"}, status=503)


async def _ws_sender(ws: WebSocketResponse, queue: asyncio.Queue) -> None:
    """Forward EventBus events to a WebSocket client."""
    try:
        while not ws.closed:
            msg = await queue.get()
            await ws.send_json({"type": msg["event"], **msg["data"]})
    except (ConnectionResetError, ConnectionError, asyncio.CancelledError):
        pass


def create_api_routes(server: "WebServer") -> web.RouteTableDef:
    """Create all API route definitions."""
    routes = web.RouteTableDef()

    @routes.get("/api/health")
    async def health(request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    @routes.get("/api/indicator")
    async def get_indicator(request: web.Request) -> web.Response:
        """Current icon, label and switch state."""
        indicator = server.indicator
        if indicator is None:
            return _no_indicator()
        return web.json_response(indicator.render())

    @routes.post("/api/toggle")
    async def toggle(request: web.Request) -> web.Response:
        """Flip the switch as if the user clicked it.

        Accepts {"enabled": true|false}.  The profile change runs in the
        background; the response carries the switch state right after
        activation.
        """
        indicator = server.indicator
        if indicator is None:
            return _no_indicator()
        try:
            body = await request.json()
        except ValueError:
            return web.json_response({"error": "body must be JSON"}, status=400)
        enabled = body.get("enabled") if isinstance(body, dict) else None
        if not isinstance(enabled, bool):
            return web.json_response(
                {"error": "enabled is required and must be a boolean"}, status=400
            )
        if not indicator.switch.activate(enabled):
            return web.json_response(
                {"error": "switch is not available", **indicator.render()}, status=409
            )
        logger.debug("Switch activated from %s: %s", request.remote, enabled)
        return web.json_response(indicator.render())

    @routes.post("/api/sync")
    async def sync(request: web.Request) -> web.Response:
        """Re-read the active profile now instead of waiting for the poll."""
        indicator = server.indicator
        if indicator is None:
            return _no_indicator()
        indicator.request_sync()
        return web.json_response({"scheduled": True}, status=202)

    @routes.get("/api/ws")
    async def websocket_handler(request: web.Request) -> WebSocketResponse:
        """Stream indicator changes and notifications to the page."""
        ws = WebSocketResponse(heartbeat=30)
        await ws.prepare(request)
        logger.debug("WS client connected from %s", request.remote)

        bus = server.event_bus
        queue = bus.subscribe()
        sender = asyncio.create_task(_ws_sender(ws, queue))
        try:
            # Block until client disconnects (reads drain client msgs)
            async for _msg in ws:
                pass
        except (ConnectionResetError, ConnectionError) as e:
            logger.debug("WS stream closed: %s", type(e).__name__)
        finally:
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            bus.unsubscribe(queue)
            logger.debug("WS client disconnected")
        return ws

    return routes
