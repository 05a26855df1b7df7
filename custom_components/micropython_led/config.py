"""Configuration schema and loaders for the MicroPython LED integration."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import voluptuous as vol
import yaml

from .const import (
    DEFAULT_GET_PATH,
    DEFAULT_KIND,
    DEFAULT_MANUFACTURER,
    DEFAULT_MODEL,
    DEFAULT_NAME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SERIAL_NUMBER,
    DEFAULT_SET_PATH,
    DEFAULT_TIMEOUT,
    AccessoryKind,
)

_LOGGER = logging.getLogger(__name__)

CONF_NAME = "name"
CONF_KIND = "kind"
CONF_BASE_URL = "base_url"
CONF_SET_PATH = "set_path"
CONF_GET_PATH = "get_path"
CONF_STATE_KEY = "state_key"
CONF_TIMEOUT = "timeout"
CONF_RETRY_ATTEMPTS = "retry_attempts"
CONF_RETRY_DELAY = "retry_delay"
CONF_MANUFACTURER = "manufacturer"
CONF_MODEL = "model"
CONF_SERIAL_NUMBER = "serial_number"

# Homebridge-style accessory configs name the base URL this way.
_LEGACY_BASE_URL_KEY = "apiBaseUrl"


class ConfigError(ValueError):
    """Raised when accessory configuration fails validation."""


def _base_url(value: Any) -> str:
    """Validate an absolute http(s) base URL and strip trailing slashes."""

    url = vol.Coerce(str)(value).strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise vol.Invalid(f"expected an http(s) URL, got {url!r}")
    return url.rstrip("/")


def _endpoint_path(value: Any) -> str:
    """Normalise an endpoint path so it always starts with a slash."""

    path = vol.Coerce(str)(value).strip()
    if not path:
        raise vol.Invalid("endpoint path must not be empty")
    if not path.startswith("/"):
        path = f"/{path}"
    return path


ACCESSORY_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_BASE_URL): _base_url,
        vol.Optional(CONF_NAME, default=DEFAULT_NAME): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_KIND, default=DEFAULT_KIND.value): vol.Coerce(AccessoryKind),
        vol.Optional(CONF_SET_PATH, default=DEFAULT_SET_PATH): _endpoint_path,
        vol.Optional(CONF_GET_PATH, default=DEFAULT_GET_PATH): _endpoint_path,
        vol.Optional(CONF_STATE_KEY): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_TIMEOUT, default=DEFAULT_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
        vol.Optional(CONF_RETRY_ATTEMPTS, default=DEFAULT_RETRY_ATTEMPTS): vol.All(
            vol.Coerce(int), vol.Range(min=0, max=10)
        ),
        vol.Optional(CONF_RETRY_DELAY, default=DEFAULT_RETRY_DELAY): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Optional(CONF_MANUFACTURER, default=DEFAULT_MANUFACTURER): str,
        vol.Optional(CONF_MODEL, default=DEFAULT_MODEL): str,
        vol.Optional(CONF_SERIAL_NUMBER, default=DEFAULT_SERIAL_NUMBER): str,
    }
)


@dataclass(frozen=True, slots=True)
class DeviceEndpointConfig:
    """Where and how to reach the device HTTP API."""

    base_url: str
    set_path: str = DEFAULT_SET_PATH
    get_path: str = DEFAULT_GET_PATH
    state_key: str = DEFAULT_KIND.state_key
    timeout: float = DEFAULT_TIMEOUT


@dataclass(frozen=True, slots=True)
class AccessoryConfig:
    """Validated configuration for a single bridged accessory."""

    endpoint: DeviceEndpointConfig
    name: str = DEFAULT_NAME
    kind: AccessoryKind = DEFAULT_KIND
    manufacturer: str = DEFAULT_MANUFACTURER
    model: str = DEFAULT_MODEL
    serial_number: str = DEFAULT_SERIAL_NUMBER
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY


def parse_accessory_config(data: Mapping[str, Any]) -> AccessoryConfig:
    """Validate a raw mapping and build an ``AccessoryConfig``."""

    raw = dict(data)
    if CONF_BASE_URL not in raw and _LEGACY_BASE_URL_KEY in raw:
        raw[CONF_BASE_URL] = raw.pop(_LEGACY_BASE_URL_KEY)

    known = {str(key.schema) for key in ACCESSORY_SCHEMA.schema}
    ignored = sorted(str(key) for key in raw if key not in known)
    if ignored:
        _LOGGER.debug("Ignoring unknown accessory options: %s", ", ".join(ignored))
    try:
        validated = ACCESSORY_SCHEMA({k: v for k, v in raw.items() if k in known})
    except vol.Invalid as err:
        raise ConfigError(f"Invalid accessory configuration: {err}") from err

    kind: AccessoryKind = validated[CONF_KIND]
    endpoint = DeviceEndpointConfig(
        base_url=validated[CONF_BASE_URL],
        set_path=validated[CONF_SET_PATH],
        get_path=validated[CONF_GET_PATH],
        state_key=validated.get(CONF_STATE_KEY, kind.state_key),
        timeout=validated[CONF_TIMEOUT],
    )
    return AccessoryConfig(
        endpoint=endpoint,
        name=validated[CONF_NAME],
        kind=kind,
        manufacturer=validated[CONF_MANUFACTURER],
        model=validated[CONF_MODEL],
        serial_number=validated[CONF_SERIAL_NUMBER],
        retry_attempts=validated[CONF_RETRY_ATTEMPTS],
        retry_delay=validated[CONF_RETRY_DELAY],
    )


def load_accessory_configs(path: Path | str) -> list[AccessoryConfig]:
    """Load one or more accessory definitions from a YAML file.

    The file may hold a single mapping or an ``accessories`` list of
    mappings.
    """

    config_path = Path(path)
    try:
        with config_path.open("r", encoding="utf-8") as fp:
            payload = yaml.safe_load(fp)
    except OSError as err:
        raise ConfigError(f"Unable to read {config_path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Unable to parse {config_path}: {err}") from err

    if payload is None:
        return []
    if isinstance(payload, Mapping) and "accessories" in payload:
        entries = payload["accessories"]
    else:
        entries = [payload]
    if not isinstance(entries, list) or not all(
        isinstance(entry, Mapping) for entry in entries
    ):
        raise ConfigError(f"{config_path} must contain mappings of accessory options")
    return [parse_accessory_config(entry) for entry in entries]
