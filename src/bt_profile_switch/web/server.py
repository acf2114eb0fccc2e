"""aiohttp server hosting the indicator's panel page and API.

The server is the panel host: the extension attaches its indicator with
:meth:`WebServer.add_to_status_area` and detaches it on disable.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from aiohttp import web

from .api import create_api_routes
from .events import EventBus

if TYPE_CHECKING:
    from ..indicator import ProfileIndicator

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8099


@web.middleware
async def _no_cache(request: web.Request, handler):
    """The page and API reflect live state; never cache them."""
    response = await handler(request)
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response


class WebServer:
    """Serves the panel page and hosts at most one indicator per role."""

    def __init__(
        self,
        event_bus: EventBus,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
    ):
        self.event_bus = event_bus
        self._host = host
        self._port = port
        self._indicators: dict[str, "ProfileIndicator"] = {}
        self._runner: web.AppRunner | None = None

        self.app = web.Application(middlewares=[_no_cache])
        self.app.router.add_routes(create_api_routes(self))
        self.app.router.add_get("/", self._serve_index)

    # -- Panel host --

    @property
    def indicator(self) -> "ProfileIndicator | None":
        """The attached indicator, if any."""
        return next(iter(self._indicators.values()), None)

    def add_to_status_area(self, role: str, indicator: "ProfileIndicator") -> None:
        if role in self._indicators:
            raise ValueError(f"An indicator is already attached as {role!r}")
        self._indicators[role] = indicator
        self.event_bus.emit("indicator_changed", indicator.render())
        logger.info("Indicator %s attached", role)

    def remove_from_status_area(self, role: str) -> None:
        if self._indicators.pop(role, None) is None:
            return
        self.event_bus.forget("indicator_changed")
        self.event_bus.emit("indicator_removed", {"role": role})
        logger.info("Indicator %s removed", role)

    # -- HTTP --

    async def _serve_index(self, request: web.Request) -> web.Response:
        return web.FileResponse(STATIC_DIR / "index.html")

    async def start(self) -> None:
        """Start the web server."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info("Web server listening on http://%s:%d", self._host, self._port)

    async def stop(self) -> None:
        """Stop the web server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Web server stopped")
