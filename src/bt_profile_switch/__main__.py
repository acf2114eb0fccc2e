"""Entry point for the Bluetooth profile switch."""

import asyncio
import logging
import signal
import sys

from . import __version__
from .config import AppConfig
from .extension import ProfileSwitchExtension
from .notify import DesktopNotifier
from .web.events import EventBus
from .web.server import WebServer

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level_name: str) -> None:
    """Configure logging to stdout."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    # Quiet noisy libraries
    logging.getLogger("dbus_next").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("pulsectl").setLevel(logging.WARNING)


async def main() -> None:
    """Enable the extension and run until signalled to stop."""
    config = AppConfig.load()
    setup_logging(config.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Bluetooth profile switch v%s starting...", __version__)

    event_bus = EventBus()
    notifier = DesktopNotifier(event_bus, enabled=config.desktop_notifications)
    web_server = WebServer(event_bus, config.web_host, config.web_port)
    extension = ProfileSwitchExtension(config, web_server, notifier, event_bus)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Received shutdown signal")
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _signal_handler)

    try:
        await web_server.start()
        extension.enable()
        await shutdown_event.wait()
    except Exception as e:
        logger.error("Fatal error: %s", e, exc_info=True)
    finally:
        extension.disable()
        await extension.wait_closed()
        await notifier.close()
        await web_server.stop()
        logger.info("Goodbye.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
