"""Discovery of grow controllers at their conventional addresses."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from growctl.models import Device, device_from_info

from .errors import GrowControllerError
from .transport import GrowControllerClient

logger = logging.getLogger(__name__)

CANDIDATE_ADDRESSES: tuple[str, ...] = (
    "growcontroller.local",
    "192.168.1.100",
    "192.168.1.101",
    "192.168.0.100",
    "192.168.0.101",
)


async def discover(
    client: GrowControllerClient,
    candidates: Iterable[str] = CANDIDATE_ADDRESSES,
) -> list[str]:
    """Probe all candidates at once and return the ones that answered.

    Addresses come back in the order their probes completed.
    """
    addresses = list(candidates)
    logger.debug("Probing %d candidate addresses", len(addresses))

    async def _probe(address: str) -> tuple[str, bool]:
        return address, await client.check_connection(address)

    found: list[str] = []
    for probe in asyncio.as_completed([_probe(address) for address in addresses]):
        address, alive = await probe
        if alive:
            logger.info("Found grow controller at %s", address)
            found.append(address)

    logger.debug("Discovery complete: %d of %d responded", len(found), len(addresses))
    return found


async def materialize_devices(
    client: GrowControllerClient, addresses: Iterable[str]
) -> list[Device]:
    """Fetch device info for each address, one at a time.

    Addresses whose info fetch fails are dropped.
    """
    devices: list[Device] = []
    for address in addresses:
        try:
            info = await client.get_device_info(address)
        except GrowControllerError as exc:
            logger.debug("Dropping %s: %s", address, exc)
            continue
        devices.append(device_from_info(info, address))
    return devices
