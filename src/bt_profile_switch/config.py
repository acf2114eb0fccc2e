"""Configuration loader for the Bluetooth profile switch.

Options live in a small JSON file.  Every key is optional; anything missing,
unknown or of the wrong type falls back to the default below.
"""

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path

from .audio.cards import A2DP_PROFILE, BLUEZ_CARD_PREFIX, HEADSET_PROFILE
from .audio.pactl import DEFAULT_PACTL

logger = logging.getLogger(__name__)

OPTIONS_PATH = Path.home() / ".config" / "bt-profile-switch" / "options.json"


@dataclass
class AppConfig:
    """Application configuration."""

    log_level: str = "info"

    # Audio backend
    pactl_path: str = DEFAULT_PACTL
    card_prefix: str = BLUEZ_CARD_PREFIX
    a2dp_profile: str = A2DP_PROFILE
    headset_profile: str = HEADSET_PROFILE

    # Reconciliation timing
    poll_interval_seconds: float = 3
    settle_delay_ms: int = 250
    watch_card_events: bool = True

    # Collaborators
    desktop_notifications: bool = True
    web_host: str = "127.0.0.1"
    web_port: int = 8099

    @property
    def settle_delay(self) -> float:
        """Settle delay in seconds."""
        return self.settle_delay_ms / 1000

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        """Build a config from parsed options, ignoring bad values."""
        config = cls()
        for field in fields(cls):
            if field.name not in data:
                continue
            value = data[field.name]
            default = getattr(config, field.name)
            # bool is an int subclass; keep the two apart.
            if field.type is bool:
                ok = isinstance(value, bool)
            elif field.type is int:
                ok = isinstance(value, int) and not isinstance(value, bool) and value > 0
            elif field.type is float:
                ok = isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
            else:
                ok = isinstance(value, str) and value != ""
            if not ok:
                logger.warning(
                    "Ignoring invalid option %s=%r, using %r", field.name, value, default
                )
                continue
            setattr(config, field.name, value)

        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            logger.warning("Ignoring unknown options: %s", ", ".join(sorted(unknown)))
        return config

    @classmethod
    def load(cls, path: str | Path = OPTIONS_PATH) -> "AppConfig":
        """Load configuration from *path*, or defaults if it is absent."""
        opts_path = Path(path)
        if not opts_path.exists():
            logger.debug("No options file at %s, using defaults", opts_path)
            return cls()

        try:
            data = json.loads(opts_path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to parse options: %s, using defaults", e)
            return cls()
        if not isinstance(data, dict):
            logger.error("Options file %s is not a JSON object, using defaults", opts_path)
            return cls()

        config = cls.from_dict(data)
        logger.info("Loaded options from %s", opts_path)
        return config
