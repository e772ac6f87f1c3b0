"""Session with the current grow controller.

The session owns everything a front end needs: the known devices, the device
currently bound, its latest status and info, and the connectivity/error
flags. State lives in an immutable :class:`SessionState` snapshot that is
swapped as a whole on every change, so readers always see a consistent
combination of fields.

Fetches are tagged with the binding generation at issue time. A response that
arrives after the session was rebound (or disconnected) is discarded instead
of being applied to the new device.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from growctl.config import Settings
from growctl.models import (
    Device,
    DeviceInfo,
    HistoricalDataPoint,
    SensorStatus,
    device_from_info,
    now_ms,
)

from .discovery import CANDIDATE_ADDRESSES, discover, materialize_devices
from .errors import GrowControllerError
from .poller import DEFAULT_INTERVAL, Poller
from .transport import GrowControllerClient

logger = logging.getLogger(__name__)

Listener = Callable[["SessionState"], None]


@dataclass(frozen=True)
class SessionState:
    devices: tuple[Device, ...] = ()
    current_device: Device | None = None
    status: SensorStatus | None = None
    device_info: DeviceInfo | None = None
    historical_data: tuple[HistoricalDataPoint, ...] = ()
    is_connected: bool = False
    is_loading: bool = False
    error: str | None = None
    # Epoch millis of the last successful status fetch, 0 if never.
    last_update: int = 0


def _upsert(devices: tuple[Device, ...], device: Device) -> tuple[Device, ...]:
    return (*(d for d in devices if d.id != device.id), device)


class GrowSession:
    def __init__(
        self,
        client: GrowControllerClient,
        *,
        poll_interval: float = DEFAULT_INTERVAL,
        stale_after: float | None = None,
        auto_poll: bool = True,
        candidates: Iterable[str] = CANDIDATE_ADDRESSES,
        clock: Callable[[], int] = now_ms,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._owns_client = owns_client
        self._clock = clock
        self._candidates = tuple(candidates)
        self._stale_after = poll_interval * 3 if stale_after is None else stale_after
        self._poller: Poller | None = None
        if auto_poll:
            self._poller = Poller(self.refresh_status, poll_interval)
        self._state = SessionState()
        self._listeners: list[Listener] = []
        self._generation = 0
        self._status_seq = 0
        self._applied_status_seq = 0

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> GrowSession:
        """Build a session with its own client configured from ``settings``.

        An explicit ``poll_interval`` keeps the default staleness of three
        intervals unless ``stale_after`` is also given.
        """
        client = GrowControllerClient(settings.transport)
        if "poll_interval" not in kwargs:
            kwargs["poll_interval"] = settings.polling.interval
            kwargs.setdefault("stale_after", settings.polling.stale_after)
        return cls(client, owns_client=True, **kwargs)

    @property
    def client(self) -> GrowControllerClient:
        return self._client

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    @property
    def current_device(self) -> Device | None:
        return self._state.current_device

    @property
    def status(self) -> SensorStatus | None:
        return self._state.status

    @property
    def device_info(self) -> DeviceInfo | None:
        return self._state.device_info

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def address(self) -> str | None:
        device = self._state.current_device
        return device.ip_address if device else None

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot. Returns an unsubscriber."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _update(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        self._sync_poller()
        for listener in list(self._listeners):
            listener(self._state)

    def _sync_poller(self) -> None:
        poller = self._poller
        if poller is None:
            return
        if self._state.is_connected and not poller.running:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                # No loop to poll on; the poller starts with the next update
                # made from async code.
                return
            poller.start()
        elif not self._state.is_connected and poller.running:
            poller.stop()

    def _bind_changes(self, device: Device) -> dict[str, Any]:
        self._generation += 1
        self._client.set_base_address(device.ip_address)
        changes: dict[str, Any] = {
            "current_device": device,
            "is_connected": True,
            "error": None,
        }
        previous = self._state.current_device
        if previous is not None and previous.id != device.id:
            changes.update(
                status=None, device_info=None, historical_data=(), last_update=0
            )
        return changes

    def bind_device(self, device: Device) -> None:
        """Make ``device`` the current device and point the client at it."""
        logger.info("Bound to '%s' at %s", device.name, device.ip_address)
        self._update(**self._bind_changes(device))

    def record_device(self, device: Device) -> None:
        self._update(devices=_upsert(self._state.devices, device))

    def forget_device(self, device_id: str) -> None:
        """Remove a known device. Forgetting the bound device disconnects it."""
        changes: dict[str, Any] = {
            "devices": tuple(d for d in self._state.devices if d.id != device_id)
        }
        current = self._state.current_device
        if current is not None and current.id == device_id:
            changes.update(self._disconnect_changes())
        self._update(**changes)

    def _disconnect_changes(self) -> dict[str, Any]:
        self._generation += 1
        current = self._state.current_device
        if current is not None:
            logger.info("Disconnected from '%s'", current.name)
        return {"current_device": None, "is_connected": False, "is_loading": False}

    def disconnect(self) -> None:
        self._update(**self._disconnect_changes())

    def report_error(self, message: str) -> None:
        self._update(error=message)

    def clear_error(self) -> None:
        self._update(error=None)

    def seconds_since_update(self) -> float | None:
        if not self._state.last_update:
            return None
        return max(self._clock() - self._state.last_update, 0) / 1000.0

    def is_stale(self, max_age: float | None = None) -> bool:
        """True if status was never fetched or is older than ``max_age`` seconds."""
        age = self.seconds_since_update()
        limit = self._stale_after if max_age is None else max_age
        return age is None or age > limit

    def _discard(self, generation: int, what: str) -> bool:
        if generation != self._generation:
            logger.debug("Discarding %s for a previous binding", what)
            return True
        return False

    async def refresh_status(self) -> None:
        """Fetch live status. A failure is treated as a disconnect."""
        address = self.address
        if not self._state.is_connected or address is None:
            return

        generation = self._generation
        self._status_seq += 1
        seq = self._status_seq
        try:
            status = await self._client.get_status(address)
        except GrowControllerError as exc:
            if self._discard(generation, "status error"):
                return
            logger.warning("Status refresh from %s failed: %s", address, exc)
            self._update(error=f"Failed to fetch status: {exc}", is_connected=False)
            return

        if self._discard(generation, "status"):
            return
        if seq < self._applied_status_seq:
            logger.debug(
                "Dropping status #%d, #%d already applied",
                seq,
                self._applied_status_seq,
            )
            return
        self._applied_status_seq = seq
        self._update(status=status, last_update=self._clock(), error=None)

    async def refresh_device_info(self) -> None:
        address = self.address
        if not self._state.is_connected or address is None:
            return

        generation = self._generation
        self._update(is_loading=True)
        try:
            info = await self._client.get_device_info(address)
        except GrowControllerError as exc:
            if self._discard(generation, "device info error"):
                self._update(is_loading=False)
                return
            logger.warning("Device info refresh from %s failed: %s", address, exc)
            self._update(
                error=f"Failed to fetch device info: {exc}", is_loading=False
            )
            return

        if self._discard(generation, "device info"):
            self._update(is_loading=False)
            return
        self._update(device_info=info, is_loading=False, error=None)

    async def refresh_historical_data(self) -> None:
        address = self.address
        if not self._state.is_connected or address is None:
            return

        generation = self._generation
        self._update(is_loading=True)
        try:
            data = await self._client.get_historical_data(address)
        except GrowControllerError as exc:
            if self._discard(generation, "historical data error"):
                self._update(is_loading=False)
                return
            logger.warning("Historical data fetch from %s failed: %s", address, exc)
            self._update(
                error=f"Failed to fetch historical data: {exc}", is_loading=False
            )
            return

        if self._discard(generation, "historical data"):
            self._update(is_loading=False)
            return
        self._update(historical_data=tuple(data), is_loading=False, error=None)

    async def connect(self, address: str) -> bool:
        """Connect to the controller at ``address`` and make it current."""
        self._update(is_loading=True, error=None)

        if not await self._client.check_connection(address):
            logger.warning("Device not reachable at %s", address)
            self._update(
                error=f"Device not reachable at {address}", is_loading=False
            )
            return False

        try:
            info = await self._client.get_device_info(address)
            status = await self._client.get_status(address)
        except GrowControllerError as exc:
            logger.warning("Failed to connect to %s: %s", address, exc)
            self._update(
                error=f"Failed to connect to device: {exc}",
                is_loading=False,
                is_connected=False,
            )
            return False

        now = self._clock()
        device = device_from_info(info, address, seen_at=now)
        changes = self._bind_changes(device)
        changes.update(
            devices=_upsert(self._state.devices, device),
            device_info=info,
            status=status,
            last_update=now,
            is_loading=False,
        )
        logger.info("Connected to '%s' (%s) at %s", device.name, device.id, address)
        self._update(**changes)
        return True

    async def discover_and_populate(self) -> list[Device]:
        """Scan the candidate addresses and replace the known devices."""
        self._update(is_loading=True)
        addresses = await discover(self._client, self._candidates)
        devices = await materialize_devices(self._client, addresses)
        self._update(devices=tuple(devices), is_loading=False)
        return devices

    async def aclose(self) -> None:
        if self._poller is not None:
            await self._poller.aclose()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GrowSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
