"""MCP server exposing a ThinQ appliance's mapped properties."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from dotenv import dotenv_values
from fastmcp import FastMCP

from thinqmap.config import load_config
from thinqmap.devices import BaseDeviceClient, MockDeviceClient, ThinQDevice
from thinqmap.engine import CapabilityEngine
from thinqmap.logging import ControlAuditLogger

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastMCP server
app = FastMCP("ThinQ Appliance Control")

# Paths
ENV_FILE = Path.home() / ".thinqmap" / ".env"
DEMO_DEVICE_FILE = Path(__file__).parent / "demo_device.json"

# Lazily initialized collaborators; tests and hosts may inject their own
client: Optional[BaseDeviceClient] = None
device: Optional[ThinQDevice] = None

# Control audit logger (fire-and-forget)
audit_logger = ControlAuditLogger()


def _load_demo_seed() -> dict:
    with open(DEMO_DEVICE_FILE, encoding="utf-8") as f:
        return json.load(f)


async def get_device() -> ThinQDevice:
    """Get or initialize the appliance.

    Reads ``THINQ_DEVICE_ID`` from ~/.thinqmap/.env. Without an injected
    client, a simulated appliance cloud seeded with a demo air conditioner
    is used.
    """
    global client, device
    if device is not None:
        return device

    env = dotenv_values(ENV_FILE)
    config = load_config()

    if client is None:
        client = MockDeviceClient(
            state_file=config.state_dir / "mock_cloud_state.json",
            seed=_load_demo_seed(),
        )
        logger.info("Using simulated appliance cloud")

    device_id = env.get("THINQ_DEVICE_ID")
    if not device_id:
        devices = await client.list_devices()
        if not devices:
            raise RuntimeError("No ThinQ devices available")
        device_id = devices[0]["deviceId"]

    engine = CapabilityEngine.from_config(config)
    device = ThinQDevice(device_id, client, engine)
    await device.setup()
    logger.info("Appliance %s ready with %d properties", device_id, len(device.store))
    return device


def _format_value(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    return str(value)


@app.tool()
async def list_properties() -> str:
    """List the appliance's properties with their current values.

    Returns:
        One line per visible property: ident, name, value and whether it can be set
    """
    logger.info("Tool called: list_properties")
    d = await get_device()
    lines = []
    for prop in d.store.get_all().values():
        if prop.hidden:
            continue
        marker = "✎" if prop.action_enabled else " "
        lines.append(f"{marker} {prop.ident} ({prop.name}): {_format_value(prop.value)}")
    if not lines:
        return "No properties available"
    return "\n".join(lines)


@app.tool()
async def get_property(ident: str) -> str:
    """Get one property of the appliance.

    Args:
        ident: Property identifier, e.g. TIMER_START_REL_HOUR

    Returns:
        The property's name, type, value and presentation
    """
    logger.info("Tool called: get_property(%s)", ident)
    d = await get_device()
    prop = d.store.get(ident)
    if prop is None:
        return f"✗ Unknown property: {ident}"

    text = (
        f"{prop.name} [{prop.ident}]\n"
        f"Type: {prop.type}\n"
        f"Value: {_format_value(prop.value)}\n"
        f"Writable: {'yes' if prop.action_enabled else 'no'}"
    )
    if prop.presentation:
        text += f"\nPresentation: {json.dumps(prop.presentation, ensure_ascii=False)}"
    return text


@app.tool()
async def set_property(ident: str, value: Union[bool, int, float, str]) -> str:
    """Change a property of the appliance.

    Args:
        ident: Property identifier, e.g. AIR_CON_JOB_MODE
        value: New value; booleans, numbers and enum tokens are accepted

    Returns:
        A message with the payload that was sent, or the reason it was not
    """
    logger.info("Tool called: set_property(%s, %r)", ident, value)
    d = await get_device()
    prop = d.store.get(ident)
    if prop is None:
        return f"✗ Unknown property: {ident}"
    if not prop.action_enabled:
        return f"✗ {ident} is read-only"

    result = await d.request_action(ident, value)
    if not isinstance(d.client, MockDeviceClient):
        await audit_logger.log_control(d.device_id, ident, value, result)

    if result["success"]:
        return f"✓ {ident} set to {_format_value(d.store.get_value(ident))}. Payload: {json.dumps(result['payload'])}"
    else:
        return f"✗ {result['message']}"


@app.tool()
async def refresh_status() -> str:
    """Fetch the latest status snapshot and update all properties.

    Returns:
        The number of properties that received a value
    """
    logger.info("Tool called: refresh_status")
    d = await get_device()
    applied = await d.update_status()
    return f"✓ Status refreshed, {len(applied)} properties updated"


@app.tool()
async def describe_plan() -> str:
    """Describe the property plan built from the appliance profile.

    Returns:
        JSON list of plan entries (ident, type, name, visibility, action and initial value)
    """
    logger.info("Tool called: describe_plan")
    d = await get_device()
    return json.dumps([entry.to_dict() for entry in d.plan], ensure_ascii=False, indent=2)


if __name__ == "__main__":
    app.run()
