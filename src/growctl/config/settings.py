from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, expand_path

CONFIG_ENV_VAR = "GROWCTL_CONFIG"


class DeviceConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    default_address: str = Field(default="growcontroller.local", min_length=1)


class TransportConfig(BaseModel):
    """Per-endpoint request timeouts, in seconds."""

    model_config = {"frozen": True, "extra": "forbid"}

    status_timeout: float = Field(default=5.0, gt=0)
    info_timeout: float = Field(default=5.0, gt=0)
    history_timeout: float = Field(default=10.0, gt=0)
    probe_timeout: float = Field(default=3.0, gt=0)
    command_timeout: float = Field(default=5.0, gt=0)


class PollingConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    interval: float = Field(default=5.0, gt=0)
    # A status older than this many seconds counts as stale.
    stale_after: float = Field(default=15.0, gt=0)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    device: DeviceConfig = Field(default_factory=DeviceConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def _toml_string(value: str) -> str:
    return json.dumps(value)


def render_settings_toml(settings: Settings) -> str:
    transport = settings.transport
    lines = [
        "# growctl configuration",
        "",
        "[device]",
        f"default_address = {_toml_string(settings.device.default_address)}",
        "",
        "[transport]",
        f"status_timeout = {transport.status_timeout}",
        f"info_timeout = {transport.info_timeout}",
        f"history_timeout = {transport.history_timeout}",
        f"probe_timeout = {transport.probe_timeout}",
        f"command_timeout = {transport.command_timeout}",
        "",
        "[polling]",
        f"interval = {settings.polling.interval}",
        f"stale_after = {settings.polling.stale_after}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
