"""State synchronisation between platform handlers and the device client."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Protocol, TypeVar

from .const import (
    DEFAULT_KIND,
    DEFAULT_NAME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    AccessoryKind,
)
from .device_client import DeviceError, DeviceTransportError, LedState

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")

StateListener = Callable[[bool], None]


class Unavailable(Enum):
    """Marker returned when no device state has been observed yet."""

    UNAVAILABLE = "unavailable"

    def __repr__(self) -> str:
        return "UNAVAILABLE"


UNAVAILABLE = Unavailable.UNAVAILABLE


class Freshness(str, Enum):
    """How much the cached value can be trusted."""

    UNKNOWN = "unknown"
    FRESH = "fresh"
    STALE_ON_ERROR = "stale_on_error"


@dataclass(frozen=True, slots=True)
class CachedState:
    """Last observed device state plus bookkeeping about the latest call."""

    value: bool | None = None
    last_updated_at: float | None = None
    last_error: DeviceError | None = None

    @property
    def freshness(self) -> Freshness:
        """Derive the freshness of ``value`` from the recorded outcome."""

        if self.value is None:
            return Freshness.UNKNOWN
        if self.last_error is not None:
            return Freshness.STALE_ON_ERROR
        return Freshness.FRESH


class SupportsDeviceState(Protocol):
    """Subset of ``DeviceClient`` used by the adapter."""

    async def async_set_state(self, desired: bool) -> LedState:
        """Request a new state and return what the device reports."""

    async def async_get_state(self) -> bool:
        """Return the state currently reported by the device."""

    async def async_close(self) -> None:
        """Release network resources."""


class StateSyncAdapter:
    """Serve platform get/set calls from the device with a stale-safe cache.

    Handlers never raise device errors. A failed write leaves the cache
    untouched, a failed read returns the last known value (or
    ``UNAVAILABLE`` before the first success). Concurrent reads share a
    single in-flight device request. Cache transitions are serialised by
    an ``asyncio.Lock`` while network I/O happens outside of it.
    """

    def __init__(
        self,
        client: SupportsDeviceState,
        *,
        name: str = DEFAULT_NAME,
        kind: AccessoryKind = DEFAULT_KIND,
        logger: logging.Logger | None = None,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Bind the device client and the policy knobs for this accessory."""

        self._client = client
        self._name = name
        self._kind = kind
        self._logger = logger or _LOGGER
        self._retry_attempts = max(0, retry_attempts)
        self._retry_delay = retry_delay
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cached = CachedState()
        self._last_set_error: DeviceError | None = None
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._inflight_get: asyncio.Task[bool | Unavailable] | None = None
        self._closed = False

    @property
    def name(self) -> str:
        """Return the accessory display name."""

        return self._name

    @property
    def cached_state(self) -> CachedState:
        """Return a snapshot of the cached state."""

        return self._cached

    @property
    def value(self) -> bool | Unavailable:
        """Return the cached value without contacting the device."""

        value = self._cached.value
        return UNAVAILABLE if value is None else value

    @property
    def freshness(self) -> Freshness:
        """Return the freshness of the cached value."""

        return self._cached.freshness

    @property
    def last_set_error(self) -> DeviceError | None:
        """Return the error raised by the most recent failed write, if any."""

        return self._last_set_error

    @property
    def closed(self) -> bool:
        """Return True once ``async_shutdown`` has been called."""

        return self._closed

    def async_add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with the new value whenever the cached value changes."""

        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def async_handle_set(self, desired: bool) -> None:
        """Write ``desired`` to the device and cache the state it echoes."""

        if self._closed:
            self._logger.debug("%s: ignoring set after shutdown", self._name)
            return

        task = self._spawn(
            self._async_with_retries(self._client.async_set_state, desired)
        )
        try:
            state = await task
        except DeviceError as err:
            self._last_set_error = err
            self._logger.error("Error setting LED state: %s", err)
            return
        except asyncio.CancelledError:
            if not self._aborted_by_shutdown():
                raise
            self._logger.debug("%s: set aborted by shutdown", self._name)
            return

        self._last_set_error = None
        previous = await self._async_record_success(state.on)
        label = "ON" if state.on else "OFF"
        if previous != state.on:
            self._logger.info("Set LED state to: %s", label)
        else:
            self._logger.debug("%s: LED already %s", self._name, label)
        self._logger.debug("%s: set characteristic On -> %s", self._name, desired)

    async def async_handle_get(self) -> bool | Unavailable:
        """Return the device state, falling back to the cached value on failure."""

        if self._closed:
            return self.value

        task = self._inflight_get
        if task is None:
            task = self._spawn(self._async_refresh())
            self._inflight_get = task
            task.add_done_callback(self._clear_inflight_get)
        try:
            # Other callers may be awaiting the same task.
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not self._aborted_by_shutdown():
                raise
            self._logger.debug("%s: get aborted by shutdown", self._name)
            return self.value

    async def async_shutdown(self) -> None:
        """Abort in-flight device calls and release the device client."""

        if self._closed:
            return
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()
        await self._client.async_close()

    async def _async_refresh(self) -> bool | Unavailable:
        """Query the device once (plus retries) and fold the outcome into the cache."""

        try:
            value = await self._async_with_retries(self._client.async_get_state)
        except DeviceError as err:
            self._logger.error("Error getting LED state: %s", err)
            async with self._lock:
                self._cached = replace(
                    self._cached, last_updated_at=self._clock(), last_error=err
                )
            return self.value

        previous = await self._async_record_success(value)
        if previous != value:
            self._logger.info(
                "%s state changed to: %s", self._name, self._kind.label(value)
            )
        self._logger.debug("%s: get characteristic On -> %s", self._name, value)
        return value

    async def _async_record_success(self, value: bool) -> bool | None:
        """Store a successfully observed value and notify on change."""

        async with self._lock:
            previous = self._cached.value
            self._cached = CachedState(
                value=value, last_updated_at=self._clock(), last_error=None
            )
        if previous != value:
            self._notify(value)
        return previous

    async def _async_with_retries(
        self, call: Callable[..., Awaitable[_T]], *args: Any
    ) -> _T:
        attempt = 0
        while True:
            try:
                return await call(*args)
            except DeviceTransportError as err:
                if attempt >= self._retry_attempts:
                    raise
                attempt += 1
                self._logger.debug(
                    "%s: retrying after transport error (%d/%d): %s",
                    self._name,
                    attempt,
                    self._retry_attempts,
                    err,
                )
                await asyncio.sleep(self._retry_delay)

    def _notify(self, value: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:  # noqa: BLE001
                self._logger.exception("%s: state listener failed", self._name)

    def _spawn(self, coro: Coroutine[Any, Any, _T]) -> asyncio.Task[_T]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _clear_inflight_get(self, task: asyncio.Task[Any]) -> None:
        if self._inflight_get is task:
            self._inflight_get = None

    def _aborted_by_shutdown(self) -> bool:
        """Return True when a CancelledError came from shutdown, not our caller."""

        if not self._closed:
            return False
        current = asyncio.current_task()
        return current is None or not current.cancelling()
