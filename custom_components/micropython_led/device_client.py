"""HTTP client for the MicroPython device API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    create_model,
)

from .config import DeviceEndpointConfig

_LOGGER = logging.getLogger(__name__)


class DeviceError(RuntimeError):
    """Base class for failures talking to the device."""


class DeviceTransportError(DeviceError):
    """Raised when the device cannot be reached or the call timed out."""


class DeviceHttpStatusError(DeviceError):
    """Raised when the device answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        """Store the HTTP status details for logging."""

        super().__init__(f"{status_code} {reason}".strip())
        self.status_code = status_code
        self.reason = reason


class DeviceDecodeError(DeviceError):
    """Raised when a response body is not the expected JSON document."""


class LedState(BaseModel):
    """Body exchanged with the LED set endpoint."""

    model_config = ConfigDict(extra="ignore")

    on: StrictBool


_READING_MODELS: dict[str, type[BaseModel]] = {}


def _reading_model(state_key: str) -> type[BaseModel]:
    """Return a response model exposing the ``state_key`` field as ``value``.

    The device key is only ever used as an alias, so keys that are not
    valid Python identifiers or that clash with pydantic internals
    (``_on``, ``door-open``, ``model_config``) are read like any other.
    """

    model = _READING_MODELS.get(state_key)
    if model is None:
        model = create_model(
            "DeviceReading",
            __config__=ConfigDict(extra="ignore"),
            value=(StrictBool, Field(alias=state_key)),
        )
        _READING_MODELS[state_key] = model
    return model


class DeviceClient:
    """Issue single-attempt state requests against the device."""

    def __init__(
        self,
        config: DeviceEndpointConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Bind the endpoint configuration and an optional shared HTTP client."""

        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=config.base_url)
        self._timeout = httpx.Timeout(config.timeout)
        self._get_model = _reading_model(config.state_key)

    @property
    def config(self) -> DeviceEndpointConfig:
        """Return the endpoint configuration."""

        return self._config

    async def async_set_state(self, desired: bool) -> LedState:
        """Ask the device to switch to ``desired`` and return the echoed state."""

        body = LedState(on=desired).model_dump()
        payload = await self._async_post(self._config.set_path, body)
        return self._parse(payload, LedState)

    async def async_get_state(self) -> bool:
        """Query the device for its current state."""

        payload = await self._async_post(self._config.get_path)
        state = self._parse(payload, self._get_model)
        return state.value

    async def async_close(self) -> None:
        """Close the HTTP client when this instance created it."""

        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self._config.base_url}{path}"

    async def _async_post(self, path: str, body: dict[str, Any] | None = None) -> Any:
        url = self._url(path)
        _LOGGER.debug("POST %s %s", url, body)
        try:
            response = await self._client.post(url, json=body, timeout=self._timeout)
        except httpx.DecodingError as err:
            raise DeviceDecodeError(f"Undecodable response from {url}: {err}") from err
        except httpx.RequestError as err:
            # httpx timeouts frequently carry an empty message.
            reason = str(err) or type(err).__name__
            raise DeviceTransportError(f"Request to {url} failed: {reason}") from err

        if not response.is_success:
            raise DeviceHttpStatusError(response.status_code, response.reason_phrase)

        try:
            return response.json()
        except ValueError as err:
            raise DeviceDecodeError(f"Invalid JSON from {url}: {err}") from err

    @staticmethod
    def _parse(payload: Any, model: type[BaseModel]) -> Any:
        if not isinstance(payload, dict):
            raise DeviceDecodeError(
                f"Expected a JSON object, got {type(payload).__name__}"
            )
        try:
            return model.model_validate(payload)
        except ValidationError as err:
            raise DeviceDecodeError(str(err)) from err
