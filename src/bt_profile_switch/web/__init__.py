"""Panel host: aiohttp server exposing the indicator to the browser."""

from .events import EventBus
from .server import WebServer

__all__ = ["EventBus", "WebServer"]
