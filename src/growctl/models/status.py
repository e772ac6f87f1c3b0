"""Payload models for the controller's JSON endpoints."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, model_validator

from growctl.vpd import GrowStage, VpdStatus, classify_vpd

logger = logging.getLogger(__name__)


class SensorStatus(BaseModel):
    """Point-in-time telemetry from ``/status``."""

    model_config = {"extra": "ignore"}

    temperature_c: float
    ambient_temperature_c: float
    humidity_percent: float
    co2_ppm: float
    vpd_kpa: float
    vpd_status: VpdStatus
    vpd_min: float
    vpd_max: float
    grow_stage: GrowStage
    plant_timer_active: bool
    plant_age_days: float
    light_on: bool
    battery_voltage: float
    firmware_version: str

    @model_validator(mode="after")
    def _derive_vpd_status(self) -> SensorStatus:
        derived = classify_vpd(self.vpd_kpa, self.vpd_min, self.vpd_max)
        if derived != self.vpd_status:
            logger.debug(
                "Correcting vpd_status %s -> %s (vpd=%.2f, band=%.2f-%.2f)",
                self.vpd_status,
                derived,
                self.vpd_kpa,
                self.vpd_min,
                self.vpd_max,
            )
            self.vpd_status = derived
        return self


class DeviceInfo(BaseModel):
    """Slow-changing device descriptor from ``/api/info``."""

    model_config = {"extra": "ignore"}

    device_name: str
    firmware_version: str
    hostname: str
    ip_address: str
    mac_address: str
    rssi: int
    uptime_ms: int
    free_heap: int
    sensor_type: str
    plant_timer_active: bool
    plant_age_days: float
    light_on_hour: int = Field(ge=0, le=23)
    light_off_hour: int = Field(ge=0, le=23)
    time_synced: bool


class HistoricalDataPoint(BaseModel):
    """One archived sample from ``/data``."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    timestamp: int = Field(alias="t")
    temperature: float = Field(alias="temp")
    humidity: float = Field(alias="hum")
    co2: float
    vpd: float
