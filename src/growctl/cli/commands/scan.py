from __future__ import annotations

import logging

import typer
from rich.console import Console

from growctl.cli import common
from growctl.cli.render import devices_table
from growctl.core import GrowSession
from growctl.models import Device
from growctl.utils.redaction import Redactor

logger = logging.getLogger(__name__)


def scan(
    redact: bool = typer.Option(
        False,
        "--redact",
        help="Redact sensitive values in output",
    ),
) -> None:
    """Look for grow controllers at their conventional addresses."""
    console = Console()
    settings = common.load_settings_or_exit()

    console.print("Discovering grow controllers...")

    async def _scan(session: GrowSession) -> list[Device]:
        return await session.discover_and_populate()

    devices = common.run_session(settings, _scan)

    if not devices:
        console.print("No grow controllers found.")
        return

    console.print(devices_table(devices, Redactor(enabled=redact)))
    console.print(f"\n[green]Found {len(devices)} device(s)[/green]")


def register(app: typer.Typer) -> None:
    app.command()(scan)
