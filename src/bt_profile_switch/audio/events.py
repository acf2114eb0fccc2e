"""PulseAudio card event subscription.

Polling alone notices a newly connected headset only on the next tick.  This
monitor subscribes to ``card`` events through pulsectl_asyncio and invokes a
callback whenever a card appears, changes profile or goes away.
"""

import asyncio
import logging
from collections.abc import Callable

from pulsectl_asyncio import PulseAsync

logger = logging.getLogger(__name__)

CLIENT_NAME = "bt-profile-switch-events"


class CardEventMonitor:
    """Calls *callback* for every PulseAudio card event."""

    MAX_RETRY_DELAY = 30  # seconds

    def __init__(self, callback: Callable[[str, int], None]):
        self._callback = callback
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the subscription loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._event_loop())

    def stop(self) -> None:
        """Cancel the subscription loop."""
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _event_loop(self) -> None:
        """Subscribe to card events, reconnecting with exponential backoff.

        PulseAudio restarts (or a missing server) are not fatal; the loop
        keeps retrying until cancelled.
        """
        retry_delay = 2
        while True:
            try:
                async with PulseAsync(CLIENT_NAME) as pulse:
                    retry_delay = 2
                    logger.info("PA event subscription started (card events)")
                    async for event in pulse.subscribe_events("card"):
                        logger.debug("PA card %s: index=%d", event.t, event.index)
                        self._callback(str(event.t), event.index)
            except asyncio.CancelledError:
                return
            except Exception as e:
                logger.warning(
                    "PA event subscription error: %s, restarting in %ds", e, retry_delay,
                )
            try:
                await asyncio.sleep(retry_delay)
            except asyncio.CancelledError:
                return
            retry_delay = min(retry_delay * 2, self.MAX_RETRY_DELAY)
