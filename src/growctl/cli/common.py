from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer

from growctl.config import Settings, get_settings, resolve_config_path
from growctl.core import GrowSession, ValidationError

T = TypeVar("T")


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_address(address: str | None, settings: Settings) -> str:
    return address or settings.device.default_address


def build_session(settings: Settings, **kwargs: Any) -> GrowSession:
    kwargs.setdefault("auto_poll", False)
    return GrowSession.from_settings(settings, **kwargs)


def run_session(
    settings: Settings,
    func: Callable[[GrowSession], Awaitable[T]],
    **kwargs: Any,
) -> T:
    """Run ``func`` against a fresh session, closing it afterwards."""

    async def _main() -> T:
        async with build_session(settings, **kwargs) as session:
            return await func(session)

    return asyncio.run(_main())


def fail(message: str | None) -> typer.Exit:
    typer.echo(message or "Unknown error", err=True)
    return typer.Exit(1)


def bad_parameter(exc: ValidationError) -> typer.BadParameter:
    return typer.BadParameter(str(exc))
