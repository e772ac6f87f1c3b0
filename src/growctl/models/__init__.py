"""Data models for growctl."""

from growctl.models.device import Device, device_from_info, now_ms
from growctl.models.status import DeviceInfo, HistoricalDataPoint, SensorStatus

__all__ = [
    "Device",
    "DeviceInfo",
    "HistoricalDataPoint",
    "SensorStatus",
    "device_from_info",
    "now_ms",
]
