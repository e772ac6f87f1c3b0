"""Control commands with post-command resynchronization."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from .errors import GrowControllerError
from .session import GrowSession
from .transport import validate_hour, validate_stage

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Send control commands to the session's current device.

    After the device accepts a command the session state is refreshed so it
    reflects what the device reports, not what was requested. Commands are
    never retried. A command that succeeds but whose refresh fails still
    returns ``True``; the refresh failure shows up in ``session.error``.
    """

    def __init__(self, session: GrowSession) -> None:
        self._session = session

    async def _dispatch(
        self,
        description: str,
        send: Callable[[str], Awaitable[None]],
        resync: Callable[[], Awaitable[None]],
    ) -> bool:
        address = self._session.address
        if address is None:
            self._session.report_error(f"Failed to {description}: no device connected")
            return False

        try:
            await send(address)
        except GrowControllerError as exc:
            logger.warning("Failed to %s on %s: %s", description, address, exc)
            self._session.report_error(f"Failed to {description}: {exc}")
            return False

        logger.info("Sent '%s' to %s", description, address)
        device = self._session.current_device
        if device is not None and not self._session.is_connected:
            # The device answered, so a binding dropped by a failed poll is
            # restored before the refresh.
            self._session.bind_device(device)
        await resync()
        return True

    async def set_grow_stage(self, stage: str) -> bool:
        stage = validate_stage(stage)
        client = self._session.client
        return await self._dispatch(
            f"set grow stage to {stage}",
            lambda address: client.set_grow_stage(stage, address=address),
            self._session.refresh_status,
        )

    async def start_plant_timer(self) -> bool:
        client = self._session.client
        return await self._dispatch(
            "start plant timer",
            lambda address: client.start_plant_timer(address=address),
            self._session.refresh_status,
        )

    async def stop_plant_timer(self) -> bool:
        client = self._session.client
        return await self._dispatch(
            "stop plant timer",
            lambda address: client.stop_plant_timer(address=address),
            self._session.refresh_status,
        )

    async def reset_plant_timer(self) -> bool:
        client = self._session.client
        return await self._dispatch(
            "reset plant timer",
            lambda address: client.reset_plant_timer(address=address),
            self._session.refresh_status,
        )

    async def set_light_schedule(self, on_hour: int, off_hour: int) -> bool:
        validate_hour("on_hour", on_hour)
        validate_hour("off_hour", off_hour)
        client = self._session.client
        return await self._dispatch(
            "set light schedule",
            lambda address: client.set_light_schedule(
                on_hour, off_hour, address=address
            ),
            self._session.refresh_device_info,
        )
