from __future__ import annotations

import time

from pydantic import BaseModel

from .status import DeviceInfo


def now_ms() -> int:
    return int(time.time() * 1000)


class Device(BaseModel):
    """A controller the session knows about, keyed by its MAC address."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str
    name: str
    ip_address: str
    hostname: str
    last_seen: int
    # Set on successful contact and never re-validated afterwards.
    is_online: bool = True


def device_from_info(
    info: DeviceInfo, address: str, seen_at: int | None = None
) -> Device:
    """Build a ``Device`` for ``info`` as reached at ``address``."""
    return Device(
        id=info.mac_address,
        name=info.device_name,
        ip_address=address,
        hostname=info.hostname,
        last_seen=now_ms() if seen_at is None else seen_at,
        is_online=True,
    )
