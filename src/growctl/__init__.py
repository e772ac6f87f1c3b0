"""growctl - companion client for networked grow controllers."""

from __future__ import annotations

from importlib.metadata import version

from .config import Settings, get_settings
from .core import (
    CommandDispatcher,
    GrowControllerClient,
    GrowControllerError,
    GrowSession,
    HttpError,
    ProtocolError,
    SessionState,
    TransportError,
    ValidationError,
    discover,
)
from .models import Device, DeviceInfo, HistoricalDataPoint, SensorStatus

__all__ = [
    "CommandDispatcher",
    "Device",
    "DeviceInfo",
    "GrowControllerClient",
    "GrowControllerError",
    "GrowSession",
    "HistoricalDataPoint",
    "HttpError",
    "ProtocolError",
    "SensorStatus",
    "SessionState",
    "Settings",
    "TransportError",
    "ValidationError",
    "__version__",
    "discover",
    "get_settings",
]

__version__ = version("growctl")
