from __future__ import annotations

import typer
from rich.console import Console

from growctl.config import Settings, render_settings_toml, write_settings

from .common import load_settings_or_exit, resolve_config_path_or_exit

app = typer.Typer(
    help="Inspect or write the growctl settings file", no_args_is_help=True
)


@app.command("show")
def show() -> None:
    """Print the effective settings as TOML."""
    settings = load_settings_or_exit()
    Console().print(render_settings_toml(settings), markup=False, highlight=False)


@app.command("path")
def path() -> None:
    """Print where the settings file is read from."""
    config_path, exists = resolve_config_path_or_exit(allow_missing=True)
    suffix = "" if exists else " (not created)"
    typer.echo(f"{config_path}{suffix}")


@app.command("init")
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a settings file with the default values."""
    config_path, exists = resolve_config_path_or_exit(allow_missing=True)
    if exists and not force:
        typer.echo(f"Config already exists: {config_path} (use --force)", err=True)
        raise typer.Exit(1)
    write_settings(Settings(), config_path)
    typer.echo(f"Wrote {config_path}")
