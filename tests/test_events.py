"""PulseAudio card event monitor and the event bus."""

import asyncio
from types import SimpleNamespace

from bt_profile_switch.audio import events
from bt_profile_switch.audio.events import CardEventMonitor
from bt_profile_switch.web.events import EventBus


class FakePulse:
    facilities = []

    def __init__(self, client_name):
        self.client_name = client_name

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def subscribe_events(self, *facilities):
        FakePulse.facilities.append(facilities)
        yield SimpleNamespace(t="new", index=3)
        yield SimpleNamespace(t="change", index=3)
        await asyncio.Event().wait()


async def test_monitor_forwards_card_events(monkeypatch):
    monkeypatch.setattr(events, "PulseAsync", FakePulse)
    received = []
    monitor = CardEventMonitor(lambda kind, index: received.append((kind, index)))

    monitor.start()
    monitor.start()
    for _ in range(10):
        await asyncio.sleep(0)
    assert received == [("new", 3), ("change", 3)]
    assert FakePulse.facilities[-1] == ("card",)
    assert monitor.running

    monitor.stop()
    await asyncio.sleep(0)
    assert not monitor.running


def test_event_bus_replays_sticky_events_only():
    bus = EventBus()
    bus.emit("indicator_changed", {"state": False})
    bus.emit("indicator_changed", {"state": True})
    bus.emit("notification", {"message": "hi"})

    queue = bus.subscribe()
    assert queue.get_nowait() == {"event": "indicator_changed", "data": {"state": True}}
    assert queue.empty()

    bus.forget("indicator_changed")
    assert bus.subscribe().empty()
    assert bus.client_count == 2
    bus.unsubscribe(queue)
    assert bus.client_count == 1
