from __future__ import annotations

import httpx
import pytest
from fakes import FakeController

from growctl.config import get_settings
from growctl.core import GrowControllerClient, GrowSession


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("GROWCTL_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def controller() -> FakeController:
    return FakeController()


@pytest.fixture
def client(controller: FakeController) -> GrowControllerClient:
    return GrowControllerClient(transport=httpx.MockTransport(controller.handler))


@pytest.fixture
def session(client: GrowControllerClient) -> GrowSession:
    return GrowSession(client, auto_poll=False)
