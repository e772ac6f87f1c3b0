from __future__ import annotations

import pytest

from growctl.utils.formatting import (
    format_hour,
    format_last_update,
    format_plant_age,
    format_uptime,
)
from growctl.utils.redaction import Redactor


@pytest.mark.parametrize(
    ("ms", "text"),
    [(0, "0h"), (5 * 3_600_000, "5h"), (26 * 3_600_000, "1d 2h")],
)
def test_format_uptime(ms, text):
    assert format_uptime(ms) == text


@pytest.mark.parametrize(
    ("days", "text"),
    [(0.4, "Less than a day"), (1, "1 day"), (3.9, "3 days"), (16, "2w 2d")],
)
def test_format_plant_age(days, text):
    assert format_plant_age(days) == text


@pytest.mark.parametrize(
    ("age", "text"),
    [(None, "Never"), (2.0, "Just now"), (42.0, "42s ago"), (185.0, "3m ago")],
)
def test_format_last_update(age, text):
    assert format_last_update(age) == text


def test_format_hour():
    assert format_hour(6) == "06:00"


def test_redactor_masks_addresses():
    redactor = Redactor()
    assert redactor.redact_ip("192.168.1.100") == "x.x.x.100"
    assert redactor.redact_ip("127.0.0.1:8080") == "x.x.x.1:8080"
    assert redactor.redact_ip("growcontroller.local") == "growcontroller.local"
    assert redactor.redact_mac("24:6F:28:AA:BB:01") == "24:6F:28:xx:xx:01"
    assert redactor.redact_mac("24:6F:28:AA:BB:02") == "24:6F:28:xx:xx:02"
    assert redactor.redact_mac("24:6F:28:AA:BB:01") == "24:6F:28:xx:xx:01"


def test_disabled_redactor_is_passthrough():
    redactor = Redactor(enabled=False)
    assert redactor.redact_ip("192.168.1.100") == "192.168.1.100"
    assert redactor.redact_mac("24:6F:28:AA:BB:01") == "24:6F:28:AA:BB:01"
