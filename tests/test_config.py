"""Options file loading."""

import json

from bt_profile_switch.config import AppConfig


def test_missing_file_gives_defaults(tmp_path):
    config = AppConfig.load(tmp_path / "missing.json")
    assert config == AppConfig()
    assert config.poll_interval_seconds == 3
    assert config.settle_delay == 0.25
    assert config.a2dp_profile == "a2dp-sink"
    assert config.headset_profile == "headset-head-unit"
    assert config.card_prefix == "bluez_card."


def test_loads_values(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({
        "log_level": "debug",
        "headset_profile": "headset_head_unit",
        "poll_interval_seconds": 5,
        "watch_card_events": False,
        "web_port": 9000,
    }))
    config = AppConfig.load(path)
    assert config.log_level == "debug"
    assert config.headset_profile == "headset_head_unit"
    assert config.poll_interval_seconds == 5
    assert config.watch_card_events is False
    assert config.web_port == 9000


def test_invalid_values_fall_back(tmp_path, caplog):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({
        "poll_interval_seconds": -1,
        "settle_delay_ms": "soon",
        "watch_card_events": 1,
        "web_port": True,
        "pactl_path": "",
        "colour": "blue",
    }))
    config = AppConfig.load(path)
    assert config == AppConfig()
    assert "Ignoring unknown options: colour" in caplog.text


def test_unparsable_file(tmp_path):
    path = tmp_path / "options.json"
    path.write_text("{not json")
    assert AppConfig.load(path) == AppConfig()


def test_non_object_file(tmp_path):
    path = tmp_path / "options.json"
    path.write_text("[1, 2]")
    assert AppConfig.load(path) == AppConfig()


def test_integer_options_reject_fractions(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({
        "web_port": 8099.5,
        "settle_delay_ms": 10.5,
        "poll_interval_seconds": 0.5,
    }))
    config = AppConfig.load(path)
    assert config.web_port == 8099
    assert config.settle_delay_ms == 250
    assert config.poll_interval_seconds == 0.5
