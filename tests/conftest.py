"""Shared fakes: an in-memory pactl and a recording notifier."""

import asyncio

import pytest

from bt_profile_switch.audio.pactl import CommandResult, PactlBackend
from bt_profile_switch.config import AppConfig
from bt_profile_switch.indicator import ProfileIndicator
from bt_profile_switch.notify import NotificationError
from bt_profile_switch.web.events import EventBus

ALSA_CARD = "alsa_card.pci-0000_00_1f.3"


class Hold:
    """Suspends one pactl call until released."""

    def __init__(self):
        self.reached = asyncio.Event()
        self._released = asyncio.Event()

    def release(self) -> None:
        self._released.set()

    async def wait(self) -> None:
        self.reached.set()
        await self._released.wait()


class FakePactl:
    """Runner standing in for the pactl binary.

    Calls are keyed as ``list-short``, ``list`` and ``set``.
    """

    def __init__(self):
        self.cards: dict[str, str] = {ALSA_CARD: "output:analog-stereo"}
        self.profiles: dict[str, set[str]] = {
            ALSA_CARD: {"output:analog-stereo", "off"},
        }
        self.calls: list[list[str]] = []
        self.envs: list[dict | None] = []
        self.failures: dict[str, CommandResult] = {}
        self._holds: dict[str, list[Hold]] = {}

    def add_card(self, name: str, profile: str, profiles=None) -> None:
        self.cards[name] = profile
        self.profiles[name] = set(profiles or {"a2dp-sink", "headset-head-unit", "off"})

    def hold(self, key: str) -> Hold:
        """Suspend the next call of *key*."""
        hold = Hold()
        self._holds.setdefault(key, []).append(hold)
        return hold

    def fail(self, key: str, stderr: str = "Connection failure: Connection refused") -> None:
        self.failures[key] = CommandResult(success=False, stderr=stderr, exit_status=1)

    def calls_of(self, key: str) -> list[list[str]]:
        return [argv for argv in self.calls if self._key(argv) == key]

    @staticmethod
    def _key(argv) -> str:
        args = list(argv[1:])
        if args == ["list", "cards", "short"]:
            return "list-short"
        if args == ["list", "cards"]:
            return "list"
        if args[:1] == ["set-card-profile"]:
            return "set"
        return "unknown"

    def _short_listing(self) -> str:
        lines = []
        for index, name in enumerate(self.cards):
            driver = "module-bluez5-device.c" if name.startswith("bluez") else "module-alsa-card.c"
            lines.append(f"{index}\t{name}\t{driver}")
        return "\n".join(lines) + ("\n" if lines else "")

    def _long_listing(self) -> str:
        out = []
        for index, (name, active) in enumerate(self.cards.items()):
            out.append(f"Card #{index}")
            out.append(f"\tName: {name}")
            out.append("\tDriver: module-bluez5-device.c")
            out.append("\tProfiles:")
            for profile in sorted(self.profiles[name]):
                out.append(f"\t\t{profile}: {profile} (priority: 10, available: yes)")
            out.append(f"\tActive Profile: {active}")
            out.append("")
        return "\n".join(out)

    async def __call__(self, argv, env=None) -> CommandResult:
        self.calls.append(list(argv))
        self.envs.append(env)
        key = self._key(argv)
        holds = self._holds.get(key)
        if holds:
            await holds.pop(0).wait()
        else:
            await asyncio.sleep(0)

        if key in self.failures:
            return self.failures[key]
        if key == "list-short":
            return CommandResult(True, self._short_listing(), "", 0)
        if key == "list":
            return CommandResult(True, self._long_listing(), "", 0)
        if key == "set":
            card, profile = argv[2], argv[3]
            if card not in self.cards:
                return CommandResult(False, "", "Failure: No such entity", 1)
            if profile not in self.profiles[card]:
                return CommandResult(False, "", "Failure: Invalid argument", 1)
            self.cards[card] = profile
            return CommandResult(True, "", "", 0)
        return CommandResult(False, "", "unknown command", 1)


class FakeNotifier:
    def __init__(self, rich_errors: bool = True):
        self.infos: list[str] = []
        self.errors: list[tuple[str, str]] = []
        self._rich_errors = rich_errors

    async def notify(self, message: str) -> None:
        self.infos.append(message)

    async def notify_error(self, title: str, message: str) -> None:
        if not self._rich_errors:
            raise NotificationError("error notifications unavailable")
        self.errors.append((title, message))


@pytest.fixture
def pactl() -> FakePactl:
    return FakePactl()


@pytest.fixture
def backend(pactl) -> PactlBackend:
    return PactlBackend("pactl", runner=pactl)


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(settle_delay_ms=0, poll_interval_seconds=0.01, watch_card_events=False)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def indicator(config, backend, notifier, event_bus) -> ProfileIndicator:
    return ProfileIndicator(config, backend, notifier, event_bus)


async def drain(indicator: ProfileIndicator) -> None:
    """Wait until every task spawned by *indicator* has finished."""
    while indicator.pending_tasks:
        await asyncio.gather(*indicator.pending_tasks)
