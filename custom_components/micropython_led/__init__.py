"""Bridge a binary MicroPython device into a home automation platform."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx

from .accessory import (
    AccessoryInformation,
    AccessoryPlatform,
    Characteristic,
    MicroPythonAccessory,
)
from .adapter import (
    UNAVAILABLE,
    CachedState,
    Freshness,
    StateSyncAdapter,
    Unavailable,
)
from .config import (
    AccessoryConfig,
    ConfigError,
    DeviceEndpointConfig,
    load_accessory_configs,
    parse_accessory_config,
)
from .const import DOMAIN, AccessoryKind
from .device_client import (
    DeviceClient,
    DeviceDecodeError,
    DeviceError,
    DeviceHttpStatusError,
    DeviceTransportError,
)

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "DOMAIN",
    "UNAVAILABLE",
    "AccessoryConfig",
    "AccessoryInformation",
    "AccessoryKind",
    "AccessoryPlatform",
    "CachedState",
    "Characteristic",
    "ConfigError",
    "DeviceClient",
    "DeviceDecodeError",
    "DeviceEndpointConfig",
    "DeviceError",
    "DeviceHttpStatusError",
    "DeviceTransportError",
    "Freshness",
    "MicroPythonAccessory",
    "StateSyncAdapter",
    "Unavailable",
    "async_setup_accessory",
    "async_setup_from_yaml",
    "async_unload_accessory",
    "load_accessory_configs",
    "parse_accessory_config",
]


async def async_setup_accessory(
    platform: AccessoryPlatform,
    config: AccessoryConfig | Mapping[str, Any],
    *,
    http_client: httpx.AsyncClient | None = None,
    logger: logging.Logger | None = None,
) -> MicroPythonAccessory:
    """Validate ``config`` and register a bridged accessory with ``platform``."""

    if not isinstance(config, AccessoryConfig):
        config = parse_accessory_config(config)
    accessory = MicroPythonAccessory(
        platform, config, http_client=http_client, logger=logger
    )
    _LOGGER.info(
        "Set up %s accessory %r at %s",
        config.kind.value,
        config.name,
        config.endpoint.base_url,
    )
    return accessory


async def async_setup_from_yaml(
    platform: AccessoryPlatform,
    path: Path | str,
    *,
    http_client: httpx.AsyncClient | None = None,
    logger: logging.Logger | None = None,
) -> list[MicroPythonAccessory]:
    """Register every accessory defined in the YAML file at ``path``."""

    return [
        await async_setup_accessory(
            platform, config, http_client=http_client, logger=logger
        )
        for config in load_accessory_configs(path)
    ]


async def async_unload_accessory(accessory: MicroPythonAccessory) -> bool:
    """Shut an accessory down, aborting any in-flight device calls."""

    if accessory.adapter.closed:
        return False
    await accessory.async_close()
    _LOGGER.info("Unloaded accessory %r", accessory.config.name)
    return True
