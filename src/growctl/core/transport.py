"""HTTP transport for the grow controller API."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
import pydantic

from growctl.config import TransportConfig
from growctl.models import DeviceInfo, HistoricalDataPoint, SensorStatus
from growctl.vpd import GROW_STAGES, GrowStage

from .errors import HttpError, ProtocolError, TransportError, ValidationError

logger = logging.getLogger(__name__)

STATUS_PATH = "/status"
INFO_PATH = "/api/info"
HISTORY_PATH = "/data"

_HEADERS = {"Accept": "application/json"}
_HISTORY_ADAPTER = pydantic.TypeAdapter(list[HistoricalDataPoint])

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def validate_hour(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 23:
        raise ValidationError(f"{name} must be an hour between 0 and 23, got {value!r}")
    return value


def validate_stage(stage: str) -> GrowStage:
    if stage not in GROW_STAGES:
        raise ValidationError(
            f"Unknown grow stage {stage!r}; expected one of {', '.join(GROW_STAGES)}"
        )
    return stage  # type: ignore[return-value]


class GrowControllerClient:
    """Async client for one or more grow controllers on the local network.

    Every operation takes an explicit ``address`` (host or ``host:port``).
    When it is omitted the address set with :meth:`set_base_address` is used.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(transport=transport, headers=_HEADERS)
        self._base_address: str | None = None

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def base_address(self) -> str | None:
        return self._base_address

    @property
    def base_url(self) -> str:
        return f"http://{self._base_address}" if self._base_address else ""

    def set_base_address(self, address: str) -> None:
        self._base_address = address
        logger.debug("Default device address set to %s", address)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> GrowControllerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _url(self, address: str | None, path: str) -> str:
        target = address or self._base_address
        if not target:
            raise TransportError("No device address set")
        return f"http://{target}{path}"

    async def _get(
        self,
        address: str | None,
        path: str,
        timeout: float,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = self._url(address, path)
        try:
            response = await self._http.get(
                url, params=params, timeout=timeout, headers=_HEADERS
            )
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"Timed out after {timeout:g}s requesting {url}"
            ) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        if not response.is_success:
            raise HttpError(response.status_code, url)
        return response

    async def _get_json(
        self, address: str | None, path: str, timeout: float
    ) -> Any:
        response = await self._get(address, path, timeout)
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError(f"Invalid JSON from {response.url}: {exc}") from exc

    async def _get_model(
        self, address: str | None, path: str, timeout: float, model: type[ModelT]
    ) -> ModelT:
        data = await self._get_json(address, path, timeout)
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ProtocolError(f"Unexpected {model.__name__} payload: {exc}") from exc

    async def get_status(self, address: str | None = None) -> SensorStatus:
        return await self._get_model(
            address, STATUS_PATH, self._config.status_timeout, SensorStatus
        )

    async def get_device_info(self, address: str | None = None) -> DeviceInfo:
        return await self._get_model(
            address, INFO_PATH, self._config.info_timeout, DeviceInfo
        )

    async def get_historical_data(
        self, address: str | None = None
    ) -> list[HistoricalDataPoint]:
        data = await self._get_json(
            address, HISTORY_PATH, self._config.history_timeout
        )
        try:
            return _HISTORY_ADAPTER.validate_python(data)
        except pydantic.ValidationError as exc:
            raise ProtocolError(f"Unexpected historical data payload: {exc}") from exc

    async def _command(
        self, address: str | None, path: str, params: dict[str, Any] | None = None
    ) -> None:
        await self._get(address, path, self._config.command_timeout, params=params)
        logger.debug("Command %s accepted by %s", path, address or self._base_address)

    async def set_grow_stage(self, stage: str, address: str | None = None) -> None:
        stage = validate_stage(stage)
        await self._command(address, f"/stage/{stage}")

    async def start_plant_timer(self, address: str | None = None) -> None:
        await self._command(address, "/timer/start")

    async def stop_plant_timer(self, address: str | None = None) -> None:
        await self._command(address, "/timer/stop")

    async def reset_plant_timer(self, address: str | None = None) -> None:
        await self._command(address, "/timer/reset")

    async def set_light_schedule(
        self, on_hour: int, off_hour: int, address: str | None = None
    ) -> None:
        validate_hour("on_hour", on_hour)
        validate_hour("off_hour", off_hour)
        await self._command(
            address, "/light/set", params={"on": on_hour, "off": off_hour}
        )

    async def check_connection(self, address: str) -> bool:
        """Probe ``address`` for a live controller. Never raises."""
        try:
            await self._get(address, INFO_PATH, self._config.probe_timeout)
        except TransportError as exc:
            logger.debug("No response from %s: %s", address, exc)
            return False
        except HttpError as exc:
            logger.debug("Probe of %s rejected: %s", address, exc)
            return False
        return True
