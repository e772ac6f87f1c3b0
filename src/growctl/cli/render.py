from __future__ import annotations

from collections.abc import Sequence

from rich.table import Table

from growctl.models import Device, DeviceInfo, HistoricalDataPoint, SensorStatus
from growctl.utils.formatting import format_hour, format_plant_age, format_uptime
from growctl.utils.redaction import Redactor

VPD_STYLES = {"too_low": "blue", "optimal": "green", "too_high": "red"}
VPD_LABELS = {"too_low": "Too low", "optimal": "Optimal", "too_high": "Too high"}


def vpd_markup(status: SensorStatus) -> str:
    style = VPD_STYLES[status.vpd_status]
    return (
        f"[{style}]{status.vpd_kpa:.2f} kPa {VPD_LABELS[status.vpd_status]}[/{style}]"
        f" (optimal {status.vpd_min:.1f}-{status.vpd_max:.1f})"
    )


def status_table(status: SensorStatus) -> Table:
    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Temperature", f"{status.temperature_c:.1f} °C")
    table.add_row("Ambient", f"{status.ambient_temperature_c:.1f} °C")
    table.add_row("Humidity", f"{status.humidity_percent:.1f} %")
    table.add_row("CO2", f"{status.co2_ppm:.0f} ppm")
    table.add_row("VPD", vpd_markup(status))
    table.add_row("Stage", status.grow_stage)
    table.add_row(
        "Plant age",
        format_plant_age(status.plant_age_days)
        if status.plant_timer_active
        else "Not tracking",
    )
    table.add_row("Lights", "on" if status.light_on else "off")
    table.add_row("Battery", f"{status.battery_voltage:.2f} V")
    table.add_row("Firmware", status.firmware_version)
    return table


def info_table(info: DeviceInfo, redactor: Redactor | None = None) -> Table:
    redactor = redactor or Redactor(enabled=False)
    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Name", info.device_name)
    table.add_row("Hostname", info.hostname)
    table.add_row("IP", redactor.redact_ip(info.ip_address))
    table.add_row("MAC", redactor.redact_mac(info.mac_address))
    table.add_row("Firmware", info.firmware_version)
    table.add_row("Sensor", info.sensor_type)
    table.add_row("Uptime", format_uptime(info.uptime_ms))
    table.add_row("Signal", f"{info.rssi} dBm")
    table.add_row("Free memory", f"{info.free_heap} bytes")
    table.add_row(
        "Light schedule",
        f"{format_hour(info.light_on_hour)}-{format_hour(info.light_off_hour)}",
    )
    table.add_row("Time synced", "yes" if info.time_synced else "no")
    return table


def devices_table(devices: Sequence[Device], redactor: Redactor) -> Table:
    table = Table()
    table.add_column("Address", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Hostname")
    table.add_column("MAC Address")

    for device in devices:
        table.add_row(
            redactor.redact_ip(device.ip_address),
            device.name,
            device.hostname,
            redactor.redact_mac(device.id),
        )
    return table


def history_table(points: Sequence[HistoricalDataPoint]) -> Table:
    table = Table()
    table.add_column("Time", style="cyan")
    table.add_column("Temp °C", justify="right")
    table.add_column("RH %", justify="right")
    table.add_column("CO2 ppm", justify="right")
    table.add_column("VPD kPa", justify="right")

    for point in points:
        table.add_row(
            str(point.timestamp),
            f"{point.temperature:.1f}",
            f"{point.humidity:.1f}",
            f"{point.co2:.0f}",
            f"{point.vpd:.2f}",
        )
    return table
