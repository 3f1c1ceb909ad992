"""Tests for the MCP appliance server tools."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from thinqmap.config import EngineConfig
from thinqmap.devices import BaseDeviceClient, MockDeviceClient
from thinqmap.mcp_servers import appliance_server

# The @app.tool() decorator wraps functions into FunctionTool objects.
# Access the underlying async functions via the .fn attribute.
_list_properties = appliance_server.list_properties.fn
_get_property = appliance_server.get_property.fn
_set_property = appliance_server.set_property.fn
_refresh_status = appliance_server.refresh_status.fn
_describe_plan = appliance_server.describe_plan.fn


class CloudClient(BaseDeviceClient):
    """Stand-in for a real cloud client, backed by the mock cloud."""

    def __init__(self, backend: MockDeviceClient):
        self.backend = backend

    async def list_devices(self):
        return await self.backend.list_devices()

    async def get_profile(self, device_id):
        return await self.backend.get_profile(device_id)

    async def get_status(self, device_id):
        return await self.backend.get_status(device_id)

    async def control(self, device_id, payload):
        return await self.backend.control(device_id, payload)


@pytest.fixture
def env():
    """Values returned by the patched .env reader."""
    return {}


@pytest.fixture(autouse=True)
def _inject_client(mock_client, tmp_path, env):
    """Inject the mock cloud into the server module and reset after each test."""
    appliance_server.client = mock_client
    appliance_server.device = None
    with patch("thinqmap.mcp_servers.appliance_server.dotenv_values", return_value=env), patch(
        "thinqmap.mcp_servers.appliance_server.load_config", return_value=EngineConfig(state_dir=tmp_path / "state")
    ):
        yield
    appliance_server.client = None
    appliance_server.device = None


@pytest.mark.asyncio
async def test_get_device_uses_first_listed_device():
    d = await appliance_server.get_device()

    assert d.device_id == "ac-1"
    assert await appliance_server.get_device() is d


@pytest.mark.asyncio
async def test_get_device_uses_configured_device_id(env):
    env["THINQ_DEVICE_ID"] = "fridge-1"

    d = await appliance_server.get_device()

    assert d.device_id == "fridge-1"
    assert d.device_type == "DEVICE_REFRIGERATOR"


@pytest.mark.asyncio
async def test_get_device_falls_back_to_demo_cloud(tmp_path):
    appliance_server.client = None

    d = await appliance_server.get_device()

    assert isinstance(appliance_server.client, MockDeviceClient)
    assert appliance_server.client.state_file == tmp_path / "state" / "mock_cloud_state.json"
    assert d.device_id == "demo-ac-1"
    assert "POWER" in d.store


@pytest.mark.asyncio
async def test_list_properties_formats_response():
    result = await _list_properties()

    assert "✎ POWER (Power): OFF" in result
    assert "  CURRENT_TEMPERATURE (Room Temperature): 26.5" in result
    assert "TIMER_START_REL_HOUR" not in result


@pytest.mark.asyncio
async def test_get_property_formats_response():
    result = await _get_property("CURRENT_TEMPERATURE")

    assert "Room Temperature [CURRENT_TEMPERATURE]" in result
    assert "Type: float" in result
    assert "Value: 26.5" in result
    assert "Writable: no" in result


@pytest.mark.asyncio
async def test_get_property_unknown():
    assert await _get_property("NOPE") == "✗ Unknown property: NOPE"


@pytest.mark.asyncio
async def test_set_property_sends_payload(mock_client):
    result = await _set_property("POWER", True)

    assert result.startswith("✓ POWER set to ON")
    assert '{"operation": {"airConOperationMode": "POWER_ON"}}' in result
    status = await mock_client.get_status("ac-1")
    assert status["operation"]["airConOperationMode"] == "POWER_ON"


@pytest.mark.asyncio
async def test_set_property_read_only():
    assert await _set_property("CURRENT_TEMPERATURE", 20) == "✗ CURRENT_TEMPERATURE is read-only"


@pytest.mark.asyncio
async def test_set_property_unknown():
    assert await _set_property("NOPE", 1) == "✗ Unknown property: NOPE"


@pytest.mark.asyncio
async def test_mock_cloud_requests_are_not_audited():
    with patch.object(appliance_server.audit_logger, "log_control", new=AsyncMock()) as log_control:
        await _set_property("POWER", True)

    log_control.assert_not_awaited()


@pytest.mark.asyncio
async def test_cloud_requests_are_audited(mock_client):
    appliance_server.client = CloudClient(mock_client)

    with patch.object(appliance_server.audit_logger, "log_control", new=AsyncMock()) as log_control:
        await _set_property("POWER", True)

    log_control.assert_awaited_once()
    device_id, ident, value, result = log_control.await_args.args
    assert (device_id, ident, value) == ("ac-1", "POWER", True)
    assert result["success"] is True


@pytest.mark.asyncio
async def test_refresh_status_formats_response(mock_client):
    await _list_properties()
    await mock_client.control("ac-1", {"temperature": {"currentTemperature": 21.0}})

    result = await _refresh_status()

    assert result.startswith("✓ Status refreshed")
    assert "Value: 21.0" in await _get_property("CURRENT_TEMPERATURE")


@pytest.mark.asyncio
async def test_describe_plan_returns_json():
    plan = json.loads(await _describe_plan())

    entries = {e["ident"]: e for e in plan}
    assert entries["POWER"]["shouldCreate"] is True
    assert entries["POWER"]["enableAction"] is True
    assert entries["POWER"]["initialValue"] is False
