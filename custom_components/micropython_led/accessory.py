"""Accessory wiring between the platform characteristic model and the adapter."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from .adapter import StateSyncAdapter, Unavailable
from .config import AccessoryConfig
from .const import SERVICE_ACCESSORY_INFORMATION
from .device_client import DeviceClient

_LOGGER = logging.getLogger(__name__)

SetHandler = Callable[[bool], Awaitable[None]]
GetHandler = Callable[[], Awaitable["bool | Unavailable"]]


@dataclass(frozen=True, slots=True)
class AccessoryInformation:
    """Static metadata shown by the platform for the accessory."""

    name: str
    manufacturer: str
    model: str
    serial_number: str

    @classmethod
    def from_config(cls, config: AccessoryConfig) -> AccessoryInformation:
        """Build the information block from accessory configuration."""

        return cls(
            name=config.name,
            manufacturer=config.manufacturer,
            model=config.model,
            serial_number=config.serial_number,
        )


class Characteristic(Protocol):
    """Platform characteristic that accepts read/write handlers."""

    def on_set(self, handler: SetHandler) -> Any:
        """Register the write handler."""

    def on_get(self, handler: GetHandler) -> Any:
        """Register the read handler."""

    def update_value(self, value: bool) -> Any:
        """Push a new value to the platform without a read request."""


class AccessoryPlatform(Protocol):
    """Registration surface provided by the home automation platform."""

    def set_information(self, information: AccessoryInformation) -> Any:
        """Publish accessory information for the accessory."""

    def add_service(self, service_type: str, name: str) -> Characteristic:
        """Create (or reuse) a service and return its primary characteristic."""


class MicroPythonAccessory:
    """A single bridged accessory bound to one device endpoint."""

    def __init__(
        self,
        platform: AccessoryPlatform,
        config: AccessoryConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
        adapter: StateSyncAdapter | None = None,
    ) -> None:
        """Create the device client and adapter and register platform handlers."""

        self._config = config
        self._platform = platform
        self.information = AccessoryInformation.from_config(config)
        self.adapter = adapter or StateSyncAdapter(
            DeviceClient(config.endpoint, http_client),
            name=config.name,
            kind=config.kind,
            logger=logger,
            retry_attempts=config.retry_attempts,
            retry_delay=config.retry_delay,
        )

        platform.set_information(self.information)
        self._characteristic = platform.add_service(
            config.kind.service_type, config.name
        )
        self._characteristic.on_set(self.adapter.async_handle_set)
        self._characteristic.on_get(self.adapter.async_handle_get)
        self._remove_listener: Callable[[], None] | None = (
            self.adapter.async_add_listener(self._push_value)
        )
        _LOGGER.debug(
            "Registered %s service %r for %s",
            config.kind.service_type,
            config.name,
            config.endpoint.base_url,
        )

    @property
    def config(self) -> AccessoryConfig:
        """Return the accessory configuration."""

        return self._config

    @property
    def services(self) -> tuple[str, ...]:
        """Return the service types exposed by this accessory."""

        return (SERVICE_ACCESSORY_INFORMATION, self._config.kind.service_type)

    async def async_close(self) -> None:
        """Stop pushing updates and shut the adapter down."""

        remove = self._remove_listener
        if remove is not None:
            remove()
            self._remove_listener = None
        await self.adapter.async_shutdown()

    def _push_value(self, value: bool) -> None:
        self._characteristic.update_value(value)
