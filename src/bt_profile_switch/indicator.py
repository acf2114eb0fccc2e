"""Panel indicator that keeps the headset switch in sync with PulseAudio.

The indicator owns one :class:`SwitchMenuItem`.  Background syncs read the
canonical Bluetooth card's active profile and mirror it on the switch; user
toggles write the matching profile with ``pactl set-card-profile``.

Everything runs on one event loop.  Each ``await`` on pactl (or on the
settle delay) is a point where a competing sync, a toggle or teardown may
have started, so ``busy`` and ``destroyed`` are re-checked after every one
of them before the switch is touched:

* a toggle always wins over a sync that was already in flight, even one
  that resumes after the toggle has finished;
* after :meth:`ProfileIndicator.destroy` nothing touches the switch again.
"""

import asyncio
import enum
import logging
from collections.abc import Callable, Coroutine
from dataclasses import asdict, dataclass

from .audio.cards import (
    CommandFailure,
    find_target_card,
    get_active_profile,
    is_headset_profile,
    set_profile,
)
from .audio.events import CardEventMonitor
from .audio.pactl import PactlBackend
from .config import AppConfig
from .notify import notify_error
from .panel import SwitchMenuItem
from .web.events import EventBus

logger = logging.getLogger(__name__)

ICON_NAME = "bluetooth-active-symbolic"
BASE_LABEL = "Headset mode"
NOTIFY_TITLE = "Bluetooth Switch"
LABEL_SEPARATOR = " - "


class IndicatorPhase(enum.Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    TOGGLING = "toggling"
    DESTROYED = "destroyed"


@dataclass
class ControllerState:
    """Mutable flags owned by the indicator."""

    busy: bool = False
    destroyed: bool = False
    toggle_suppressed: bool = False
    label_detail: str = ""


class ProfileIndicator:
    """Reconciles the headset switch with the active card profile."""

    CARD_EVENT_DEBOUNCE = 0.5  # seconds

    def __init__(
        self,
        config: AppConfig,
        backend: PactlBackend,
        notifier,
        event_bus: EventBus | None = None,
        monitor_factory: Callable[..., CardEventMonitor] = CardEventMonitor,
    ):
        self._config = config
        self._backend = backend
        self._notifier = notifier
        self._event_bus = event_bus
        self.state = ControllerState()
        self.card_name: str | None = None
        self._syncs_in_flight = 0
        self._toggle_generation = 0

        self.switch = SwitchMenuItem(BASE_LABEL, False, on_change=self._publish)
        self._switch_handler_id = self.switch.connect(self._on_switch_toggled)

        self._tasks: set[asyncio.Task] = set()
        self._poll_task: asyncio.Task | None = None
        self._sync_handle: asyncio.TimerHandle | None = None
        self._card_monitor = (
            monitor_factory(self._on_card_event) if config.watch_card_events else None
        )

    # -- Lifecycle --

    def start(self) -> None:
        """Run the first sync and start polling.  Needs a running loop."""
        if self.state.destroyed:
            return
        self._spawn(self.sync_state())
        # Cards can appear after startup; polling keeps the switch accurate.
        self._poll_task = asyncio.create_task(self._poll_loop())
        if self._card_monitor is not None:
            self._card_monitor.start()
        logger.info(
            "Indicator started (poll every %ss, card events %s)",
            self._config.poll_interval_seconds,
            "on" if self._card_monitor is not None else "off",
        )

    def destroy(self) -> None:
        """Tear down.  Irreversible.

        In-flight pactl calls are left to finish; their continuations see
        ``destroyed`` and return without touching the switch.
        """
        if self.state.destroyed:
            return
        self.state.destroyed = True

        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        if self._sync_handle is not None:
            self._sync_handle.cancel()
            self._sync_handle = None
        if self._card_monitor is not None:
            self._card_monitor.stop()
        if self._switch_handler_id:
            self.switch.disconnect(self._switch_handler_id)
            self._switch_handler_id = 0

        logger.info("Indicator destroyed (%d task(s) still pending)", len(self._tasks))

    @property
    def pending_tasks(self) -> set[asyncio.Task]:
        return set(self._tasks)

    @property
    def phase(self) -> IndicatorPhase:
        if self.state.destroyed:
            return IndicatorPhase.DESTROYED
        if self.state.busy:
            return IndicatorPhase.TOGGLING
        if self._syncs_in_flight:
            return IndicatorPhase.SYNCING
        return IndicatorPhase.IDLE

    def render(self) -> dict:
        """JSON-serialisable snapshot for the panel host."""
        return {
            "icon": ICON_NAME,
            "label": self.switch.label,
            "state": self.switch.state,
            "sensitive": self.switch.sensitive,
            "phase": self.phase.value,
            "card": self.card_name,
            **asdict(self.state),
        }

    # -- Sync --

    def request_sync(self) -> None:
        """Schedule a sync in the background."""
        if self.state.destroyed:
            return
        self._spawn(self.sync_state())

    async def sync_state(self) -> None:
        """Mirror the canonical card's active profile on the switch."""
        if self.state.busy or self.state.destroyed:
            return
        self._syncs_in_flight += 1
        try:
            await self._sync(self._toggle_generation)
        finally:
            self._syncs_in_flight -= 1

    def _superseded(self, generation: int) -> bool:
        """True once a toggle started (or teardown happened) since *generation*.

        Checking ``busy`` alone misses a toggle that began and finished
        while the sync was suspended.
        """
        return (
            self.state.busy
            or self.state.destroyed
            or generation != self._toggle_generation
        )

    async def _sync(self, generation: int) -> None:
        card, card_error = await find_target_card(self._backend, self._config.card_prefix)

        # A toggle may have started (or we were torn down) while awaiting.
        if self._superseded(generation):
            return

        if card_error is not None:
            self.card_name = None
            self._set_label_detail(str(card_error))
            self.switch.set_sensitive(False)
            return

        self.card_name = card.name
        self.switch.set_sensitive(True)
        self._set_label_detail("")

        profile, profile_error = await get_active_profile(self._backend, card)

        if self._superseded(generation):
            return

        if profile_error is not None:
            self._set_label_detail(f"{card.name}: {profile_error}")
            self.switch.set_sensitive(False)
            return

        is_headset = is_headset_profile(profile, self._config.headset_profile)
        logger.debug("Card %s active profile %s (headset=%s)", card.name, profile, is_headset)
        self._set_toggle_state_quietly(is_headset)

    # -- Toggle --

    async def on_toggle(self, enabled: bool) -> None:
        """Switch the canonical card to the headset (*enabled*) or A2DP profile."""
        if self.state.busy or self.state.destroyed:
            return

        self.state.busy = True
        self._toggle_generation += 1
        self.switch.set_sensitive(False)
        try:
            await self._apply_profile(enabled)
        except Exception as e:
            logger.error("Switching profile failed: %s", e, exc_info=True)
        finally:
            self.state.busy = False
            if not self.state.destroyed:
                self.switch.set_sensitive(True)

        if self.state.destroyed:
            return

        # Give the audio stack a moment to update "Active Profile" before syncing.
        await asyncio.sleep(self._config.settle_delay)
        if not self.state.destroyed:
            await self.sync_state()

    async def _apply_profile(self, enabled: bool) -> None:
        card, card_error = await find_target_card(self._backend, self._config.card_prefix)
        if self.state.destroyed:
            return
        if card_error is not None:
            await notify_error(self._notifier, NOTIFY_TITLE, str(card_error))
            return

        target = self._config.headset_profile if enabled else self._config.a2dp_profile
        logger.info("Switching %s to %s", card.name, target)
        result = await set_profile(self._backend, card, target)

        if self.state.destroyed:
            return

        if not result.success:
            await notify_error(self._notifier, NOTIFY_TITLE, str(CommandFailure(result)))
            return

        await self._notifier.notify(f"Bluetooth audio: {'Headset' if enabled else 'A2DP'}")

    # -- Internals --

    def _on_switch_toggled(self, _item: SwitchMenuItem, state: bool) -> None:
        if self.state.toggle_suppressed:
            return
        self._spawn(self.on_toggle(state))

    def _set_toggle_state_quietly(self, state: bool) -> None:
        self.state.toggle_suppressed = True
        try:
            self.switch.set_toggle_state(state)
        finally:
            self.state.toggle_suppressed = False

    def _set_label_detail(self, detail: str) -> None:
        detail = detail.strip()
        self.state.label_detail = detail
        self.switch.set_label(f"{BASE_LABEL}{LABEL_SEPARATOR}{detail}" if detail else BASE_LABEL)

    def _on_card_event(self, kind: str, index: int) -> None:
        """Debounce bursts of card events into one sync."""
        if self.state.destroyed:
            return
        if self._sync_handle is not None:
            self._sync_handle.cancel()
        loop = asyncio.get_running_loop()
        self._sync_handle = loop.call_later(self.CARD_EVENT_DEBOUNCE, self._debounced_sync)

    def _debounced_sync(self) -> None:
        self._sync_handle = None
        self.request_sync()

    async def _poll_loop(self) -> None:
        """Sync every ``poll_interval_seconds``.

        The interval is measured from the end of one sync to the start of
        the next, so the period is the interval plus however long pactl
        took.  Polls never overlap.
        """
        while not self.state.destroyed:
            try:
                await asyncio.sleep(self._config.poll_interval_seconds)
                if self.state.destroyed:
                    return
                await self.sync_state()
            except asyncio.CancelledError:
                return
            except Exception as e:
                logger.warning("Periodic sync failed: %s", e, exc_info=True)

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Indicator task failed: %s", exc, exc_info=exc)

    def _publish(self) -> None:
        if self._event_bus is not None and not self.state.destroyed:
            self._event_bus.emit("indicator_changed", self.render())
