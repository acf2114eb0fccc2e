"""Audio backend: pactl command runner, card discovery and card events."""

from .cards import (
    AudioCard,
    CommandFailure,
    DiscoveryError,
    NoDeviceError,
    ProfileNotFoundError,
    ProfileSwitchError,
)
from .events import CardEventMonitor
from .pactl import CommandResult, PactlBackend, run_command

__all__ = [
    "AudioCard",
    "CardEventMonitor",
    "CommandFailure",
    "CommandResult",
    "DiscoveryError",
    "NoDeviceError",
    "PactlBackend",
    "ProfileNotFoundError",
    "ProfileSwitchError",
    "run_command",
]
