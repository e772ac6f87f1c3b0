"""Mock grow controller HTTP server for development and testing."""

import asyncio
import json
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlsplit

from growctl.vpd import (
    GROW_STAGES,
    GrowStage,
    band_for_stage,
    classify_vpd,
    compute_vpd,
)

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

logger = logging.getLogger(__name__)

REASONS = {200: "OK", 400: "Bad Request", 404: "Not Found", 405: "Method Not Allowed"}
HISTORY_SIZE = 288
SECONDS_PER_DAY = 86400.0


def light_is_on(hour: int, on_hour: int, off_hour: int) -> bool:
    """Whether lights are on at ``hour`` for a schedule that may wrap midnight."""
    if on_hour == off_hour:
        return False
    if on_hour < off_hour:
        return on_hour <= hour < off_hour
    return hour >= on_hour or hour < off_hour


def render_response(status: int, body: Any = None) -> bytes:
    payload = json.dumps(body if body is not None else {"ok": status == 200})
    data = payload.encode("utf-8")
    head = (
        f"HTTP/1.1 {status} {REASONS.get(status, 'Error')}\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(data)}\r\n"
        "Connection: close\r\n\r\n"
    )
    return head.encode("ascii") + data


@dataclass
class MockGrowController:
    """Emulated controller with a plant timer, grow stage and light schedule."""

    device_name: str = "GrowController"
    hostname: str = "growcontroller"
    ip_address: str = "127.0.0.1"
    mac_address: str = "24:6F:28:AA:BB:CC"
    firmware_version: str = "1.4.0"
    sensor_type: str = "SCD41"
    port: int = 8080

    temperature_c: float = 25.0
    ambient_temperature_c: float = 23.5
    humidity_percent: float = 55.0
    co2_ppm: float = 820.0
    battery_voltage: float = 4.05

    grow_stage: GrowStage = "veg"
    light_on_hour: int = 6
    light_off_hour: int = 22
    time_synced: bool = True

    clock: Callable[[], float] = field(default=time.time, repr=False)

    _timer_started_at: float | None = field(default=None, repr=False)
    _accumulated_days: float = field(default=0.0, repr=False)
    _booted_at: float | None = field(default=None, repr=False)
    _history: deque[dict[str, float]] = field(
        default_factory=lambda: deque(maxlen=HISTORY_SIZE), repr=False
    )
    _server: asyncio.Server | None = field(default=None, repr=False)

    @property
    def plant_timer_active(self) -> bool:
        return self._timer_started_at is not None

    @property
    def plant_age_days(self) -> float:
        days = self._accumulated_days
        if self._timer_started_at is not None:
            days += (self.clock() - self._timer_started_at) / SECONDS_PER_DAY
        return round(days, 2)

    def start_timer(self) -> None:
        if self._timer_started_at is None:
            self._timer_started_at = self.clock()

    def stop_timer(self) -> None:
        if self._timer_started_at is not None:
            self._accumulated_days = self.plant_age_days
            self._timer_started_at = None

    def reset_timer(self) -> None:
        self._accumulated_days = 0.0
        if self._timer_started_at is not None:
            self._timer_started_at = self.clock()

    def _uptime_ms(self) -> int:
        if self._booted_at is None:
            self._booted_at = self.clock()
        return int((self.clock() - self._booted_at) * 1000)

    def status(self) -> dict[str, Any]:
        vpd = round(compute_vpd(self.temperature_c, self.humidity_percent), 2)
        age = self.plant_age_days if self.plant_timer_active else None
        band = band_for_stage(self.grow_stage, age)
        hour = time.localtime(self.clock()).tm_hour
        self._history.append(
            {
                "t": int(self.clock()),
                "temp": self.temperature_c,
                "hum": self.humidity_percent,
                "co2": self.co2_ppm,
                "vpd": vpd,
            }
        )
        return {
            "temperature_c": self.temperature_c,
            "ambient_temperature_c": self.ambient_temperature_c,
            "humidity_percent": self.humidity_percent,
            "co2_ppm": self.co2_ppm,
            "vpd_kpa": vpd,
            "vpd_status": classify_vpd(vpd, band.min_kpa, band.max_kpa),
            "vpd_min": band.min_kpa,
            "vpd_max": band.max_kpa,
            "grow_stage": self.grow_stage,
            "plant_timer_active": self.plant_timer_active,
            "plant_age_days": self.plant_age_days,
            "light_on": light_is_on(hour, self.light_on_hour, self.light_off_hour),
            "battery_voltage": self.battery_voltage,
            "firmware_version": self.firmware_version,
        }

    def info(self) -> dict[str, Any]:
        return {
            "device_name": self.device_name,
            "firmware_version": self.firmware_version,
            "hostname": self.hostname,
            "ip_address": self.ip_address,
            "mac_address": self.mac_address,
            "rssi": -58,
            "uptime_ms": self._uptime_ms(),
            "free_heap": 182_344,
            "sensor_type": self.sensor_type,
            "plant_timer_active": self.plant_timer_active,
            "plant_age_days": self.plant_age_days,
            "light_on_hour": self.light_on_hour,
            "light_off_hour": self.light_off_hour,
            "time_synced": self.time_synced,
        }

    def handle_request(self, method: str, target: str) -> tuple[int, Any]:
        """Route one request and return ``(status_code, json_body)``."""
        if method != "GET":
            return 405, {"error": "method not allowed"}

        parts = urlsplit(target)
        path = parts.path.rstrip("/") or "/"

        if path == "/status":
            return 200, self.status()
        if path == "/api/info":
            return 200, self.info()
        if path == "/data":
            return 200, list(self._history)

        if path.startswith("/stage/"):
            stage = path.removeprefix("/stage/")
            if stage not in GROW_STAGES:
                return 400, {"error": f"unknown stage {stage}"}
            self.grow_stage = stage  # type: ignore[assignment]
            logger.info("Grow stage set to %s", stage)
            return 200, {"ok": True, "stage": stage}

        timer_actions = {
            "/timer/start": self.start_timer,
            "/timer/stop": self.stop_timer,
            "/timer/reset": self.reset_timer,
        }
        if path in timer_actions:
            timer_actions[path]()
            logger.info("Plant timer %s", path.rsplit("/", 1)[-1])
            return 200, {"ok": True, "plant_timer_active": self.plant_timer_active}

        if path == "/light/set":
            query = parse_qs(parts.query)
            try:
                on_hour = int(query["on"][0])
                off_hour = int(query["off"][0])
            except (KeyError, ValueError):
                return 400, {"error": "on and off hours are required"}
            if not (0 <= on_hour <= 23 and 0 <= off_hour <= 23):
                return 400, {"error": "hours must be between 0 and 23"}
            self.light_on_hour = on_hour
            self.light_off_hour = off_hour
            logger.info("Light schedule set to %02d:00-%02d:00", on_hour, off_hour)
            return 200, {"ok": True}

        return 404, {"error": "not found"}

    @property
    def bound_port(self) -> int:
        """Port actually listened on (useful when started with port 0)."""
        if self._server is None or not self._server.sockets:
            return self.port
        return int(self._server.sockets[0].getsockname()[1])

    async def start(self, host: str = "0.0.0.0") -> None:
        self._booted_at = self.clock()
        self._server = await asyncio.start_server(self._handle_client, host, self.port)
        logger.info(
            "Mock controller '%s' listening on %s:%d",
            self.device_name,
            host,
            self.bound_port,
        )

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            logger.info("Mock controller '%s' stopped", self.device_name)

    async def run_forever(self, host: str = "0.0.0.0") -> None:
        await self.start(host)
        if self._server:
            await self._server.serve_forever()

    async def _handle_client(
        self, reader: "StreamReader", writer: "StreamWriter"
    ) -> None:
        addr = writer.get_extra_info("peername")
        try:
            request_line = await reader.readline()
            # Drain headers; requests carry no body.
            while True:
                line = await reader.readline()
                if line in (b"\r\n", b"\n", b""):
                    break

            fields = request_line.decode("latin-1").split()
            if len(fields) < 2:
                writer.write(render_response(400, {"error": "bad request"}))
            else:
                method, target = fields[0], fields[1]
                status, body = self.handle_request(method, target)
                logger.debug("%s %s %s -> %d", addr, method, target, status)
                writer.write(render_response(status, body))
            await writer.drain()
        except (ConnectionResetError, BrokenPipeError):
            logger.debug("Client disconnected: %s", addr)
        finally:
            writer.close()
            await writer.wait_closed()


async def run_mock_device(
    port: int = 8080,
    host: str = "0.0.0.0",
    name: str = "GrowController",
    mac_address: str = "24:6F:28:AA:BB:CC",
) -> None:
    """Run a mock grow controller until interrupted."""
    device = MockGrowController(device_name=name, mac_address=mac_address, port=port)
    await device.run_forever(host)
