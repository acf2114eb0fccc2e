"""Enable/disable lifecycle for the profile switch indicator."""

import asyncio
import logging

from .audio.pactl import PactlBackend
from .config import AppConfig
from .indicator import ProfileIndicator
from .web.events import EventBus

logger = logging.getLogger(__name__)

UUID = "bt-profile-switch"


class ProfileSwitchExtension:
    """Constructs the indicator on enable and tears it down on disable.

    *host* is the panel the indicator is attached to; it must provide
    ``add_to_status_area(role, indicator)`` and
    ``remove_from_status_area(role)``.
    """

    def __init__(self, config: AppConfig, host, notifier, event_bus: EventBus | None = None):
        self._config = config
        self._host = host
        self._notifier = notifier
        self._event_bus = event_bus
        self._indicator: ProfileIndicator | None = None
        self._draining: set[asyncio.Task] = set()

    @property
    def indicator(self) -> ProfileIndicator | None:
        return self._indicator

    def enable(self) -> None:
        if self._indicator is not None:
            return
        backend = PactlBackend(self._config.pactl_path)
        self._indicator = ProfileIndicator(
            self._config, backend, self._notifier, self._event_bus
        )
        self._host.add_to_status_area(UUID, self._indicator)
        self._indicator.start()
        logger.info("Extension enabled")

    def disable(self) -> None:
        if self._indicator is None:
            return
        self._host.remove_from_status_area(UUID)
        self._indicator.destroy()
        self._draining |= self._indicator.pending_tasks
        self._indicator = None
        logger.info("Extension disabled")

    async def wait_closed(self, timeout: float = 5.0) -> None:
        """Let continuations of a disabled indicator run to completion."""
        pending = {t for t in self._draining if not t.done()}
        self._draining.clear()
        if not pending:
            return
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            logger.warning("Cancelled %d task(s) still running at shutdown", len(still_pending))
