from __future__ import annotations

import asyncio

import typer

from growctl.core import run_mock_device


def mock(
    port: int = typer.Option(8080, help="Port to listen on"),
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),
    name: str = typer.Option("GrowController", help="Device name"),
    mac: str = typer.Option("24:6F:28:AA:BB:CC", help="MAC address"),
) -> None:
    """Run a mock grow controller for development."""
    typer.echo(f"Starting mock grow controller '{name}' on {host}:{port}")
    typer.echo("Press Ctrl+C to stop")
    try:
        asyncio.run(run_mock_device(port=port, host=host, name=name, mac_address=mac))
    except KeyboardInterrupt:
        typer.echo("\nStopped")


def register(app: typer.Typer) -> None:
    app.command()(mock)
