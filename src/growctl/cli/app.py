from __future__ import annotations

from typing import Annotated

import typer

from growctl.utils.logging import setup_logging

from . import config as config_cmd
from .commands.control import register as register_control
from .commands.mock import register as register_mock
from .commands.scan import register as register_scan
from .commands.status import register as register_status

app = typer.Typer(help="growctl - grow controller companion", no_args_is_help=True)

app.add_typer(config_cmd.app, name="config")

register_scan(app)
register_status(app)
register_control(app)
register_mock(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
) -> None:
    """growctl CLI."""
    setup_logging()

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"growctl version {get_version('growctl')}")
        raise typer.Exit()
