from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from growctl.cli import common
from growctl.cli.render import history_table, info_table, status_table, vpd_markup
from growctl.core import GrowSession, SessionState
from growctl.models import HistoricalDataPoint, SensorStatus
from growctl.utils.formatting import format_last_update
from growctl.utils.redaction import Redactor

AddressArg = typer.Argument(None, help="Device address (defaults to config)")


def status(address: str | None = AddressArg) -> None:
    """Connect and show the live sensor status."""
    settings = common.load_settings_or_exit()
    target = common.resolve_address(address, settings)

    async def _status(session: GrowSession) -> SessionState:
        await session.connect(target)
        return session.state

    state = common.run_session(settings, _status)
    if not state.is_connected or state.status is None:
        raise common.fail(state.error)

    console = Console()
    device = state.current_device
    if device is not None:
        console.print(f"[bold]{device.name}[/bold] at {device.ip_address}")
    console.print(status_table(state.status))


def info(
    address: str | None = AddressArg,
    redact: bool = typer.Option(False, "--redact", help="Redact IP and MAC"),
) -> None:
    """Connect and show the device descriptor."""
    settings = common.load_settings_or_exit()
    target = common.resolve_address(address, settings)

    async def _info(session: GrowSession) -> SessionState:
        await session.connect(target)
        return session.state

    state = common.run_session(settings, _info)
    if not state.is_connected or state.device_info is None:
        raise common.fail(state.error)

    Console().print(info_table(state.device_info, Redactor(enabled=redact)))


def history(
    address: str | None = AddressArg,
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Newest samples"),
) -> None:
    """Show archived samples recorded by the device."""
    settings = common.load_settings_or_exit()
    target = common.resolve_address(address, settings)

    async def _history(session: GrowSession) -> SessionState:
        if await session.connect(target):
            await session.refresh_historical_data()
        return session.state

    state = common.run_session(settings, _history)
    if not state.is_connected or state.error:
        raise common.fail(state.error)

    points: tuple[HistoricalDataPoint, ...] = state.historical_data[-limit:]
    console = Console()
    if not points:
        console.print("No historical samples yet.")
        return
    console.print(history_table(points))


def _status_line(status: SensorStatus, age: float | None) -> str:
    return (
        f"{status.temperature_c:.1f}°C  {status.humidity_percent:.0f}%RH  "
        f"{status.co2_ppm:.0f}ppm  VPD {vpd_markup(status)}  "
        f"[dim]{format_last_update(age)}[/dim]"
    )


def watch(
    address: str | None = AddressArg,
    interval: float | None = typer.Option(
        None, "--interval", "-i", min=0.1, help="Seconds between polls"
    ),
    count: int = typer.Option(
        0, "--count", "-c", min=0, help="Stop after this many updates (0 = forever)"
    ),
) -> None:
    """Poll the device and print a line per status update."""
    settings = common.load_settings_or_exit()
    target = common.resolve_address(address, settings)
    poll_interval = interval or settings.polling.interval
    console = Console()

    async def _watch(session: GrowSession) -> str | None:
        updates: asyncio.Queue[SessionState] = asyncio.Queue()
        last_seen: list[SensorStatus | None] = [None]

        def _on_change(state: SessionState) -> None:
            if not state.is_connected or state.status is not last_seen[0]:
                last_seen[0] = state.status
                updates.put_nowait(state)

        if not await session.connect(target):
            return session.error

        device = session.current_device
        if device is not None:
            console.print(f"Watching [bold]{device.name}[/bold] at {target}")
        if session.status is not None:
            console.print(_status_line(session.status, session.seconds_since_update()))
        last_seen[0] = session.status

        unsubscribe = session.subscribe(_on_change)
        try:
            shown = 1
            while count == 0 or shown < count:
                state = await updates.get()
                if not state.is_connected:
                    return state.error or "Connection lost"
                if state.status is not None:
                    console.print(
                        _status_line(state.status, session.seconds_since_update())
                    )
                    shown += 1
        finally:
            unsubscribe()
        return None

    error = common.run_session(
        settings, _watch, auto_poll=True, poll_interval=poll_interval
    )
    if error:
        raise common.fail(error)


def register(app: typer.Typer) -> None:
    app.command()(status)
    app.command()(info)
    app.command()(history)
    app.command()(watch)
