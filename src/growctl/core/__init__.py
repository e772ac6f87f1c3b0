from __future__ import annotations

from .commands import CommandDispatcher
from .discovery import CANDIDATE_ADDRESSES, discover, materialize_devices
from .errors import (
    GrowControllerError,
    HttpError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from .mock_device import MockGrowController, run_mock_device
from .poller import Poller
from .session import GrowSession, SessionState
from .transport import GrowControllerClient

__all__ = [
    "CANDIDATE_ADDRESSES",
    "CommandDispatcher",
    "GrowControllerClient",
    "GrowControllerError",
    "GrowSession",
    "HttpError",
    "MockGrowController",
    "Poller",
    "ProtocolError",
    "SessionState",
    "TransportError",
    "ValidationError",
    "discover",
    "materialize_devices",
    "run_mock_device",
]
