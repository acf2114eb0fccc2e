"""Event bus fanning indicator updates out to WebSocket clients."""

import asyncio
import logging

logger = logging.getLogger(__name__)


class EventBus:
    """Pub/sub with one bounded asyncio.Queue per connected client.

    The most recent payload of each *sticky* event is remembered and
    replayed to new subscribers, so a freshly opened page shows the current
    switch state without waiting for the next change.
    """

    QUEUE_SIZE = 64
    STICKY_EVENTS = frozenset({"indicator_changed"})

    def __init__(self):
        self._clients: set[asyncio.Queue] = set()
        self._latest: dict[str, dict] = {}

    def subscribe(self) -> asyncio.Queue:
        """Add a client and prime its queue with the sticky events."""
        q: asyncio.Queue = asyncio.Queue(maxsize=self.QUEUE_SIZE)
        for event, data in self._latest.items():
            q.put_nowait({"event": event, "data": data})
        self._clients.add(q)
        logger.debug("EventBus client subscribed (%d total)", len(self._clients))
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        self._clients.discard(q)
        logger.debug("EventBus client unsubscribed (%d remaining)", len(self._clients))

    def emit(self, event: str, data: dict) -> None:
        """Push an event to every client; slow clients lose the event."""
        if event in self.STICKY_EVENTS:
            self._latest[event] = data
        for q in list(self._clients):
            try:
                q.put_nowait({"event": event, "data": data})
            except asyncio.QueueFull:
                logger.warning("Dropping event '%s' for slow client (queue full)", event)

    def latest(self, event: str) -> dict | None:
        return self._latest.get(event)

    def forget(self, event: str) -> None:
        """Stop replaying *event* to new subscribers."""
        self._latest.pop(event, None)

    @property
    def client_count(self) -> int:
        return len(self._clients)
