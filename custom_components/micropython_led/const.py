"""Constants for the MicroPython LED integration."""

from __future__ import annotations

from enum import Enum

DOMAIN = "micropython_led"

DEFAULT_NAME = "MicroPython LED"
DEFAULT_SET_PATH = "/led"
DEFAULT_GET_PATH = "/is_open"
DEFAULT_TIMEOUT = 5.0
DEFAULT_RETRY_ATTEMPTS = 0
DEFAULT_RETRY_DELAY = 0.5

DEFAULT_MANUFACTURER = "Custom"
DEFAULT_MODEL = "MicroPython LED"
DEFAULT_SERIAL_NUMBER = "001"

SERVICE_ACCESSORY_INFORMATION = "AccessoryInformation"
SERVICE_LIGHTBULB = "Lightbulb"
SERVICE_CONTACT_SENSOR = "ContactSensor"


class AccessoryKind(str, Enum):
    """Accessory flavours supported by the bridge."""

    LIGHTBULB = "lightbulb"
    CONTACT_SENSOR = "contact_sensor"

    @property
    def state_key(self) -> str:
        """Return the response field read by the device get endpoint."""

        if self is AccessoryKind.LIGHTBULB:
            return "on"
        return "is_open"

    @property
    def service_type(self) -> str:
        """Return the platform service type backing this kind."""

        if self is AccessoryKind.LIGHTBULB:
            return SERVICE_LIGHTBULB
        return SERVICE_CONTACT_SENSOR

    def label(self, value: bool) -> str:
        """Render ``value`` the way state transitions are logged."""

        if self is AccessoryKind.LIGHTBULB:
            return "ON" if value else "OFF"
        return "OPEN" if value else "CLOSED"


DEFAULT_KIND = AccessoryKind.CONTACT_SENSOR
