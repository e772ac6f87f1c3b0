from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest
from fakes import DEVICE_ADDRESS, DEVICE_MAC, FakeController, make_info, make_status

from growctl.core import GrowControllerClient, GrowSession, SessionState
from growctl.models import Device


def _device(device_id: str = DEVICE_MAC, ip: str = DEVICE_ADDRESS) -> Device:
    return Device(
        id=device_id,
        name="Tent A",
        ip_address=ip,
        hostname="growcontroller",
        last_seen=0,
    )


def test_bind_device_repoints_client(session):
    session.bind_device(_device(ip="10.0.0.7"))

    assert session.is_connected
    assert session.current_device.ip_address == "10.0.0.7"
    assert session.client.base_address == "10.0.0.7"
    assert session.error is None


def test_bind_device_clears_error(session):
    session.report_error("boom")
    session.bind_device(_device())
    assert session.error is None


def test_record_device_upserts_by_id(session):
    session.record_device(_device(ip="10.0.0.1"))
    session.record_device(_device("OTHER"))
    session.record_device(_device(ip="10.0.0.2"))

    devices = session.state.devices
    assert [d.id for d in devices] == ["OTHER", DEVICE_MAC]
    assert devices[-1].ip_address == "10.0.0.2"


def test_forget_device_removes_it(session):
    session.record_device(_device())
    session.record_device(_device("OTHER"))

    session.forget_device("OTHER")

    assert [d.id for d in session.state.devices] == [DEVICE_MAC]


def test_forget_bound_device_disconnects(session):
    device = _device()
    session.record_device(device)
    session.bind_device(device)

    session.forget_device(device.id)

    assert session.state.devices == ()
    assert session.current_device is None
    assert not session.is_connected


def test_forget_bound_device_publishes_one_snapshot(session):
    device = _device()
    session.record_device(device)
    session.bind_device(device)
    seen: list[SessionState] = []
    session.subscribe(seen.append)

    session.forget_device(device.id)

    assert len(seen) == 1
    assert seen[0].devices == ()
    assert seen[0].current_device is None
    assert not seen[0].is_connected


def test_connect_populates_state(session, controller):
    ok = asyncio.run(session.connect(DEVICE_ADDRESS))

    state = session.state
    assert ok is True
    assert state.is_connected
    assert not state.is_loading
    assert state.error is None
    assert state.current_device.id == DEVICE_MAC
    assert state.current_device.ip_address == DEVICE_ADDRESS
    assert state.device_info.device_name == "Tent A"
    assert state.status.grow_stage == "veg"
    assert state.last_update > 0
    assert [d.id for d in state.devices] == [DEVICE_MAC]
    # Probe, then info, then status.
    assert controller.paths() == ["/api/info", "/api/info", "/status"]


def test_connect_twice_is_stable(session):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    first = session.current_device.id
    asyncio.run(session.connect(DEVICE_ADDRESS))

    assert session.current_device.id == first
    assert session.is_connected
    assert len(session.state.devices) == 1


def test_connect_unreachable_leaves_state_alone(session):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    before = session.state

    ok = asyncio.run(session.connect("10.1.2.3"))

    after = session.state
    assert ok is False
    assert "not reachable" in after.error
    assert not after.is_loading
    assert after.is_connected == before.is_connected
    assert after.current_device == before.current_device
    assert after.status is before.status
    assert after.devices == before.devices


def test_connect_unreachable_when_never_connected(session):
    ok = asyncio.run(session.connect("10.1.2.3"))

    assert ok is False
    assert session.state.is_connected is False
    assert session.state.current_device is None
    assert session.state.devices == ()


def test_connect_aborts_when_status_fetch_fails(session, controller):
    controller.failures[(DEVICE_ADDRESS, "/status")] = 500

    ok = asyncio.run(session.connect(DEVICE_ADDRESS))

    assert ok is False
    assert session.error.startswith("Failed to connect")
    assert not session.is_connected
    assert session.current_device is None
    assert session.state.devices == ()


def test_refresh_status_when_disconnected_is_noop(session, controller):
    before = session.state
    asyncio.run(session.refresh_status())

    assert controller.requests == []
    assert session.state is before


def test_refresh_status_replaces_status(controller, client):
    now = [1_000]
    session = GrowSession(client, auto_poll=False, clock=lambda: now[0])
    asyncio.run(session.connect(DEVICE_ADDRESS))
    controller.statuses[DEVICE_ADDRESS] = {"vpd_kpa": 1.5}
    now[0] = 6_000

    asyncio.run(session.refresh_status())

    assert session.status.vpd_kpa == 1.5
    assert session.status.vpd_status == "too_high"
    assert session.state.last_update == 6_000


def test_failed_refresh_status_disconnects(session, controller):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    controller.failures[(DEVICE_ADDRESS, "/status")] = "timeout"

    asyncio.run(session.refresh_status())

    assert not session.is_connected
    assert session.error.startswith("Failed to fetch status")
    # Last observed status is kept.
    assert session.status is not None


def test_failed_refresh_device_info_keeps_connection(session, controller):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    controller.failures[(DEVICE_ADDRESS, "/api/info")] = 500

    asyncio.run(session.refresh_device_info())

    assert session.is_connected
    assert not session.state.is_loading
    assert session.error.startswith("Failed to fetch device info")


def test_refresh_device_info_toggles_loading(session, controller):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    controller.devices[DEVICE_ADDRESS] = {"light_on_hour": 5}
    seen: list[bool] = []
    session.subscribe(lambda state: seen.append(state.is_loading))

    asyncio.run(session.refresh_device_info())

    assert seen == [True, False]
    assert session.device_info.light_on_hour == 5


def test_refresh_historical_data(session, controller):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    controller.history = [
        {"t": 30, "temp": 24.0, "hum": 60.0, "co2": 800, "vpd": 1.0},
        {"t": 10, "temp": 24.2, "hum": 59.0, "co2": 805, "vpd": 1.1},
    ]

    asyncio.run(session.refresh_historical_data())

    # Delivered order is preserved.
    assert [p.timestamp for p in session.state.historical_data] == [30, 10]


def test_failed_historical_fetch_keeps_connection(session, controller):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    controller.failures[(DEVICE_ADDRESS, "/data")] = "network"

    asyncio.run(session.refresh_historical_data())

    assert session.is_connected
    assert session.error.startswith("Failed to fetch historical data")


def test_discover_and_populate_replaces_devices(client, controller):
    controller.devices = {
        "192.168.1.101": {"mac_address": "AA:AA:AA:AA:AA:02"},
        "192.168.0.100": {"mac_address": "AA:AA:AA:AA:AA:03"},
    }
    session = GrowSession(client, auto_poll=False)
    session.record_device(_device("STALE"))

    devices = asyncio.run(session.discover_and_populate())

    assert sorted(d.id for d in devices) == ["AA:AA:AA:AA:AA:02", "AA:AA:AA:AA:AA:03"]
    assert sorted(d.id for d in session.state.devices) == sorted(d.id for d in devices)
    assert not session.state.is_loading
    assert session.client.base_address is None


def test_discover_and_populate_with_nothing_found(client, controller):
    controller.devices = {}
    session = GrowSession(client, auto_poll=False)

    assert asyncio.run(session.discover_and_populate()) == []
    assert session.error is None


def test_disconnect_clears_binding(session):
    asyncio.run(session.connect(DEVICE_ADDRESS))
    session.disconnect()

    assert not session.is_connected
    assert session.current_device is None


def test_staleness(client):
    now = [0]
    session = GrowSession(
        client, auto_poll=False, stale_after=15.0, clock=lambda: now[0]
    )
    assert session.is_stale()
    assert session.seconds_since_update() is None

    now[0] = 100_000
    asyncio.run(session.connect(DEVICE_ADDRESS))
    now[0] = 110_000
    assert session.seconds_since_update() == 10.0
    assert not session.is_stale()

    now[0] = 120_000
    assert session.is_stale()
    assert not session.is_stale(max_age=30)


def test_subscribe_and_unsubscribe(session):
    seen: list[SessionState] = []
    unsubscribe = session.subscribe(seen.append)

    session.report_error("boom")
    unsubscribe()
    session.clear_error()

    assert [state.error for state in seen] == ["boom"]
    assert session.error is None


class GatedController:
    """Async handler that holds selected status responses until released."""

    def __init__(self) -> None:
        self.gates: list[asyncio.Event] = []
        self.payloads: list[dict[str, Any]] = []
        self.hold = False

    async def handler(self, request: httpx.Request) -> httpx.Response:
        address = request.url.netloc.decode()
        if request.url.path == "/api/info":
            mac = "BB:BB:BB:BB:BB:BB" if address == "10.0.0.2" else DEVICE_MAC
            return httpx.Response(200, json=make_info(mac_address=mac))
        payload = make_status(**(self.payloads.pop(0) if self.payloads else {}))
        if self.hold:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return httpx.Response(200, json=payload)


def test_response_for_previous_binding_is_discarded():
    gated = GatedController()
    client = GrowControllerClient(transport=httpx.MockTransport(gated.handler))
    session = GrowSession(client, auto_poll=False)

    async def scenario() -> None:
        await session.connect(DEVICE_ADDRESS)
        gated.hold = True
        gated.payloads.append({"vpd_kpa": 0.5})
        pending = asyncio.create_task(session.refresh_status())
        while not gated.gates:
            await asyncio.sleep(0)
        session.bind_device(_device("BB:BB:BB:BB:BB:BB", ip="10.0.0.2"))
        gated.gates[0].set()
        await pending

    asyncio.run(scenario())

    assert session.current_device.id == "BB:BB:BB:BB:BB:BB"
    assert session.status is None
    assert session.is_connected


def test_older_status_cannot_overwrite_newer():
    gated = GatedController()
    client = GrowControllerClient(transport=httpx.MockTransport(gated.handler))
    session = GrowSession(client, auto_poll=False)

    async def scenario() -> None:
        await session.connect(DEVICE_ADDRESS)
        gated.hold = True
        gated.payloads.extend([{"vpd_kpa": 0.9}, {"vpd_kpa": 1.1}])
        slow = asyncio.create_task(session.refresh_status())
        fast = asyncio.create_task(session.refresh_status())
        while len(gated.gates) < 2:
            await asyncio.sleep(0)
        gated.gates[1].set()
        await fast
        gated.gates[0].set()
        await slow

    asyncio.run(scenario())

    assert session.status.vpd_kpa == 1.1


@pytest.mark.parametrize("auto_poll", [True, False])
def test_polling_follows_connection(client, controller, auto_poll):
    session = GrowSession(client, auto_poll=auto_poll, poll_interval=60)

    async def scenario() -> tuple[bool, bool]:
        await session.connect(DEVICE_ADDRESS)
        connected = session.polling
        controller.failures[(DEVICE_ADDRESS, "/status")] = 500
        await session.refresh_status()
        after_failure = session.polling
        await session.aclose()
        return connected, after_failure

    connected, after_failure = asyncio.run(scenario())

    assert connected is auto_poll
    assert after_failure is False


def test_session_polls_while_connected():
    controller = FakeController()
    client = GrowControllerClient(transport=httpx.MockTransport(controller.handler))
    session = GrowSession(client, poll_interval=0.01)

    async def scenario() -> None:
        await session.connect(DEVICE_ADDRESS)
        await asyncio.sleep(0.08)
        controller.failures[(DEVICE_ADDRESS, "/status")] = "network"
        await asyncio.sleep(0.05)
        polls_at_disconnect = controller.paths().count("/status")
        await asyncio.sleep(0.05)
        assert controller.paths().count("/status") == polls_at_disconnect
        await session.aclose()

    asyncio.run(scenario())

    assert not session.is_connected
    # Connect fetch plus several polls.
    assert controller.paths().count("/status") >= 3


def test_polling_resumes_after_reconnect():
    controller = FakeController()
    client = GrowControllerClient(transport=httpx.MockTransport(controller.handler))
    session = GrowSession(client, poll_interval=0.01)

    async def scenario() -> tuple[int, int, bool]:
        await session.connect(DEVICE_ADDRESS)
        controller.failures[(DEVICE_ADDRESS, "/status")] = "network"
        await asyncio.sleep(0.05)
        assert not session.polling

        del controller.failures[(DEVICE_ADDRESS, "/status")]
        assert await session.connect(DEVICE_ADDRESS)
        reconnected = controller.paths().count("/status")
        await asyncio.sleep(0.08)
        polling = session.polling
        polls = controller.paths().count("/status")
        await session.aclose()
        return reconnected, polls, polling

    reconnected, polls, polling = asyncio.run(scenario())

    assert polling is True
    assert polls > reconnected
