"""Human-readable renderings of device values."""

from __future__ import annotations


def format_uptime(uptime_ms: int) -> str:
    hours = uptime_ms // 3_600_000
    days, remaining_hours = divmod(hours, 24)
    if days > 0:
        return f"{days}d {remaining_hours}h"
    return f"{hours}h"


def format_plant_age(days: float) -> str:
    if days < 1:
        return "Less than a day"
    weeks, remaining = divmod(int(days), 7)
    if weeks == 0:
        return f"{remaining} day{'s' if remaining != 1 else ''}"
    return f"{weeks}w {remaining}d"


def format_last_update(age_seconds: float | None) -> str:
    """Render the age of the last status fetch (``None`` meaning never)."""
    if age_seconds is None:
        return "Never"
    seconds = int(age_seconds)
    if seconds < 5:
        return "Just now"
    if seconds < 60:
        return f"{seconds}s ago"
    return f"{seconds // 60}m ago"


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"
