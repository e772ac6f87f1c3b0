from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum

import typer
from rich.console import Console

from growctl.cli import common
from growctl.cli.render import status_table
from growctl.core import CommandDispatcher, GrowSession, SessionState, ValidationError
from growctl.core.transport import validate_hour, validate_stage
from growctl.utils.formatting import format_hour

AddressArg = typer.Argument(None, help="Device address (defaults to config)")


class TimerAction(str, Enum):
    start = "start"
    stop = "stop"
    reset = "reset"


def _run_command(
    address: str | None,
    send: Callable[[CommandDispatcher], Awaitable[bool]],
) -> SessionState:
    settings = common.load_settings_or_exit()
    target = common.resolve_address(address, settings)

    async def _dispatch(session: GrowSession) -> tuple[bool, SessionState]:
        if not await session.connect(target):
            return False, session.state
        sent = await send(CommandDispatcher(session))
        return sent, session.state

    sent, state = common.run_session(settings, _dispatch)
    if not sent:
        raise common.fail(state.error)
    if state.error:
        # Accepted by the device, but the follow-up refresh failed.
        typer.echo(f"Warning: {state.error}", err=True)
    return state


def stage(
    grow_stage: str = typer.Argument(..., metavar="STAGE", help="veg or flower"),
    address: str | None = AddressArg,
) -> None:
    """Switch the grow stage."""
    try:
        validate_stage(grow_stage)
    except ValidationError as exc:
        raise common.bad_parameter(exc) from exc

    state = _run_command(address, lambda d: d.set_grow_stage(grow_stage))
    console = Console()
    console.print(f"[green]✓[/green] Grow stage set to {grow_stage}")
    if state.status is not None:
        console.print(status_table(state.status))


def timer(
    action: TimerAction = typer.Argument(..., help="start, stop or reset"),
    address: str | None = AddressArg,
) -> None:
    """Control the plant-age timer."""
    senders: dict[TimerAction, Callable[[CommandDispatcher], Awaitable[bool]]] = {
        TimerAction.start: lambda d: d.start_plant_timer(),
        TimerAction.stop: lambda d: d.stop_plant_timer(),
        TimerAction.reset: lambda d: d.reset_plant_timer(),
    }
    state = _run_command(address, senders[action])
    console = Console()
    console.print(f"[green]✓[/green] Plant timer {action.value}")
    if state.status is not None:
        console.print(status_table(state.status))


def light(
    on_hour: int = typer.Argument(..., help="Hour the lights turn on (0-23)"),
    off_hour: int = typer.Argument(..., help="Hour the lights turn off (0-23)"),
    address: str | None = AddressArg,
) -> None:
    """Set the light schedule."""
    try:
        validate_hour("on_hour", on_hour)
        validate_hour("off_hour", off_hour)
    except ValidationError as exc:
        raise common.bad_parameter(exc) from exc

    state = _run_command(address, lambda d: d.set_light_schedule(on_hour, off_hour))
    info = state.device_info
    on, off = (info.light_on_hour, info.light_off_hour) if info else (on_hour, off_hour)
    Console().print(
        f"[green]✓[/green] Light schedule {format_hour(on)}-{format_hour(off)}"
    )


def register(app: typer.Typer) -> None:
    app.command()(stage)
    app.command()(timer)
    app.command()(light)
