"""Tests for accessory configuration parsing."""

from __future__ import annotations

import logging

import pytest

from custom_components.micropython_led.config import (
    AccessoryConfig,
    ConfigError,
    DeviceEndpointConfig,
    load_accessory_configs,
    parse_accessory_config,
)
from custom_components.micropython_led.const import (
    DEFAULT_TIMEOUT,
    AccessoryKind,
)


def test_minimal_config_uses_defaults() -> None:
    """Only the base URL is required."""

    config = parse_accessory_config({"base_url": "http://device.local:8080"})

    assert config == AccessoryConfig(
        endpoint=DeviceEndpointConfig(
            base_url="http://device.local:8080",
            set_path="/led",
            get_path="/is_open",
            state_key="is_open",
            timeout=DEFAULT_TIMEOUT,
        ),
        name="MicroPython LED",
        kind=AccessoryKind.CONTACT_SENSOR,
        manufacturer="Custom",
        model="MicroPython LED",
        serial_number="001",
        retry_attempts=0,
        retry_delay=0.5,
    )


def test_legacy_base_url_key_and_unknown_options(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Plugin-style keys are accepted and unknown keys are logged and dropped."""

    caplog.set_level(logging.DEBUG, logger="custom_components.micropython_led.config")
    config = parse_accessory_config(
        {
            "accessory": "MicroPythonLED",
            "name": "Desk Lamp",
            "apiBaseUrl": "http://192.168.7.166:8080/",
        }
    )

    assert config.endpoint.base_url == "http://192.168.7.166:8080"
    assert config.name == "Desk Lamp"
    assert "Ignoring unknown accessory options: accessory" in caplog.messages


def test_paths_and_values_are_normalised() -> None:
    """Paths gain a leading slash and numeric strings are coerced."""

    config = parse_accessory_config(
        {
            "base_url": "https://device.local",
            "set_path": "api",
            "get_path": " /status ",
            "timeout": "2.5",
            "retry_attempts": "2",
        }
    )

    assert config.endpoint.set_path == "/api"
    assert config.endpoint.get_path == "/status"
    assert config.endpoint.timeout == 2.5
    assert config.retry_attempts == 2


def test_kind_selects_state_key_unless_overridden() -> None:
    """Light accessories read ``on``; an explicit state key wins."""

    light = parse_accessory_config(
        {"base_url": "http://device.local", "kind": "lightbulb"}
    )
    custom = parse_accessory_config(
        {"base_url": "http://device.local", "kind": "lightbulb", "state_key": "lit"}
    )

    assert light.kind is AccessoryKind.LIGHTBULB
    assert light.endpoint.state_key == "on"
    assert custom.endpoint.state_key == "lit"


@pytest.mark.parametrize(
    "data",
    (
        {},
        {"base_url": "device.local"},
        {"base_url": "ftp://device.local"},
        {"base_url": "http://device.local", "timeout": 0},
        {"base_url": "http://device.local", "timeout": "soon"},
        {"base_url": "http://device.local", "kind": "thermostat"},
        {"base_url": "http://device.local", "retry_attempts": -1},
        {"base_url": "http://device.local", "set_path": ""},
        {"base_url": "http://device.local", "name": ""},
    ),
)
def test_invalid_config_raises_config_error(data: dict) -> None:
    """Validation failures surface as ``ConfigError``."""

    with pytest.raises(ConfigError):
        parse_accessory_config(data)


def test_load_single_accessory_from_yaml(tmp_path) -> None:
    """A YAML file may describe one accessory as a mapping."""

    path = tmp_path / "accessory.yaml"
    path.write_text(
        "name: Garage Door\nbase_url: http://garage.local:8080\nkind: contact_sensor\n",
        encoding="utf-8",
    )

    [config] = load_accessory_configs(path)

    assert config.name == "Garage Door"
    assert config.endpoint.get_path == "/is_open"


def test_load_accessory_list_from_yaml(tmp_path) -> None:
    """An ``accessories`` list yields one config per entry."""

    path = tmp_path / "accessories.yaml"
    path.write_text(
        "accessories:\n"
        "  - name: Lamp\n"
        "    base_url: http://lamp.local\n"
        "    kind: lightbulb\n"
        "    get_path: /led\n"
        "  - name: Door\n"
        "    base_url: http://door.local\n",
        encoding="utf-8",
    )

    configs = load_accessory_configs(path)

    assert [config.name for config in configs] == ["Lamp", "Door"]
    assert configs[0].endpoint.state_key == "on"
    assert configs[1].endpoint.state_key == "is_open"


def test_empty_yaml_yields_no_accessories(tmp_path) -> None:
    """An empty file configures nothing."""

    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_accessory_configs(path) == []


@pytest.mark.parametrize(
    "content",
    (
        "base_url: [unterminated\n",
        "accessories: not-a-list\n",
        "- just\n- strings\n",
    ),
)
def test_malformed_yaml_raises_config_error(tmp_path, content: str) -> None:
    """Syntax errors and wrong shapes are reported as ``ConfigError``."""

    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_accessory_configs(path)


def test_missing_yaml_file_raises_config_error(tmp_path) -> None:
    """An unreadable file is a configuration problem like any other."""

    with pytest.raises(ConfigError, match="Unable to read"):
        load_accessory_configs(tmp_path / "missing.yaml")
