import pytest

from relayhub.models import DeviceState
from relayhub.server import RelayServer
from tests.conftest import FakeWebSocket, all_json


@pytest.mark.asyncio
async def test_device_path_runs_device_session():
    server = RelayServer()
    ws = FakeWebSocket([{"type": "register", "id": "esp-1"},
                        {"type": "state", "state": {"power": True}}], path="/ws/device")
    await server._handle_session(ws)
    assert (await server.hub.last_state("esp-1")).power is True
    assert "esp-1" not in server.hub.devices


@pytest.mark.asyncio
async def test_client_path_runs_client_session():
    server = RelayServer()
    await server.hub.update_state("esp-1", DeviceState(brightness=3))
    ws = FakeWebSocket([], path="/ws/client?theme=mocha")
    await server._handle_session(ws)
    assert all_json(ws.sent)[0]["id"] == "esp-1"
    assert server.hub.clients == set()


@pytest.mark.asyncio
async def test_unknown_path_is_rejected():
    server = RelayServer()
    ws = FakeWebSocket([{"type": "register", "id": "esp-1"}], path="/ws/other")
    await server._handle_session(ws)
    assert ws.closed and ws.close_code == 1008
    assert server.hub.devices == {}
