"""PulseAudio card discovery and profile control for Bluetooth devices.

When BlueZ connects an audio device, PulseAudio (or pipewire-pulse) creates
a card named like ``bluez_card.XX_XX_XX_XX_XX_XX``.  The card's active
profile decides whether it runs as a stereo A2DP sink or as a mono headset
with a microphone (HSP/HFP).

Discovery and profile reads return ``(value, error)`` pairs instead of
raising, so a polling caller can turn any failure into UI state.
"""

import logging
from dataclasses import dataclass

from .pactl import CommandResult, PactlBackend

logger = logging.getLogger(__name__)

BLUEZ_CARD_PREFIX = "bluez_card."
A2DP_PROFILE = "a2dp-sink"
HEADSET_PROFILE = "headset-head-unit"

_CARD_HEADER = "Card #"
_ACTIVE_PROFILE = "Active Profile:"


class ProfileSwitchError(Exception):
    """Base class for card discovery and profile errors."""


class CommandFailure(ProfileSwitchError):
    """An external command failed to start or exited non-zero."""

    def __init__(self, result: CommandResult, fallback: str = "Unknown error"):
        super().__init__(result.details(fallback))
        self.result = result


class DiscoveryError(ProfileSwitchError):
    """The card listing failed or contained no usable lines."""


class NoDeviceError(ProfileSwitchError):
    """No Bluetooth audio card is present."""


class ProfileNotFoundError(ProfileSwitchError):
    """The target card or its active profile is missing from the listing."""


@dataclass(frozen=True)
class AudioCard:
    """One line of ``pactl list cards short``."""

    index: int | None
    name: str
    driver: str = ""

    def is_bluetooth(self, prefix: str = BLUEZ_CARD_PREFIX) -> bool:
        return self.name.startswith(prefix)


def is_headset_profile(profile: str, headset: str = HEADSET_PROFILE) -> bool:
    """True for the headset profile and its codec variants.

    Some audio stacks expose variant names like ``headset-head-unit-msbc``.
    """
    return profile == headset or profile.startswith(headset)


def parse_cards_short(output: str) -> list[AudioCard]:
    """Parse ``pactl list cards short``.

    Each line is ``<index>\\t<name>\\t<driver>``; blank lines and lines with
    fewer than two fields are skipped.
    """
    cards = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        try:
            index = int(parts[0])
        except ValueError:
            index = None
        driver = parts[2] if len(parts) > 2 else ""
        cards.append(AudioCard(index=index, name=parts[1], driver=driver))
    return cards


def parse_active_profile(output: str, card_name: str) -> str | None:
    """Extract the active profile of *card_name* from ``pactl list cards``.

    Returns None when the card record or its ``Active Profile:`` line is
    missing.
    """
    needle = f"Name: {card_name}"
    in_card = False
    for line in output.splitlines():
        if line.startswith(_CARD_HEADER):
            in_card = False
            continue
        stripped = line.strip()
        if stripped == needle:
            in_card = True
            continue
        if in_card and stripped.startswith(_ACTIVE_PROFILE):
            return stripped[len(_ACTIVE_PROFILE):].strip()
    return None


def select_target(cards: list[AudioCard]) -> AudioCard:
    """Pick the canonical card: the lexicographically smallest name.

    Stable across polls even if pactl reorders its listing.
    """
    return min(cards, key=lambda card: card.name)


async def discover_devices(
    backend: PactlBackend, prefix: str = BLUEZ_CARD_PREFIX
) -> tuple[list[AudioCard], ProfileSwitchError | None]:
    """List Bluetooth audio cards, sorted by name."""
    result = await backend.list_cards_short()
    if not result.success:
        return [], DiscoveryError(result.stderr.strip() or "Failed to list cards")

    cards = parse_cards_short(result.stdout)
    if not cards:
        return [], DiscoveryError("No audio cards listed")

    bt_cards = sorted((c for c in cards if c.is_bluetooth(prefix)), key=lambda c: c.name)
    if not bt_cards:
        logger.debug("No Bluetooth cards among %s", [c.name for c in cards])
        return [], NoDeviceError("No Bluetooth audio cards found")
    return bt_cards, None


async def find_target_card(
    backend: PactlBackend, prefix: str = BLUEZ_CARD_PREFIX
) -> tuple[AudioCard | None, ProfileSwitchError | None]:
    """Discover Bluetooth cards and select the canonical one."""
    cards, error = await discover_devices(backend, prefix)
    if error is not None:
        return None, error
    target = select_target(cards)
    if len(cards) > 1:
        logger.debug(
            "%d Bluetooth cards present, using %s", len(cards), target.name
        )
    return target, None


async def get_active_profile(
    backend: PactlBackend, card: AudioCard
) -> tuple[str | None, ProfileSwitchError | None]:
    """Read the currently active profile of *card*."""
    result = await backend.list_cards()
    if not result.success:
        return None, ProfileNotFoundError(
            result.stderr.strip() or "Failed to read active profile"
        )

    profile = parse_active_profile(result.stdout, card.name)
    if profile is None:
        return None, ProfileNotFoundError("Active profile not found for selected card")
    return profile, None


async def set_profile(backend: PactlBackend, card: AudioCard, profile: str) -> CommandResult:
    """Ask PulseAudio to switch *card* to *profile*.

    The profile is not validated here; an unknown name fails in pactl and
    comes back as an unsuccessful result.
    """
    result = await backend.set_card_profile(card.name, profile)
    if result.success:
        logger.info("PA card profile set: %s -> %s", card.name, profile)
    else:
        logger.warning(
            "set-card-profile %s %s failed: %s",
            card.name, profile, result.details(),
        )
    return result
