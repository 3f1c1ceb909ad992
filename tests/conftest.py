"""Shared fixtures for capability engine tests."""

import json
from pathlib import Path

import pytest

from thinqmap.config import BUNDLED_CAPABILITIES_DIR
from thinqmap.devices import MockDeviceClient
from thinqmap.engine import CapabilityEngine

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str):
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def tmp_state_file(tmp_path):
    """Provide a temporary state file path that doesn't touch ~/.thinqmap/."""
    return tmp_path / "mock_cloud_state.json"


@pytest.fixture
def ac_profile():
    return load_fixture("air_conditioner_profile.json")


@pytest.fixture
def ac_status():
    return load_fixture("air_conditioner_status.json")


@pytest.fixture
def fridge_profile():
    return load_fixture("refrigerator_profile.json")


@pytest.fixture
def fridge_status():
    return load_fixture("refrigerator_status.json")


@pytest.fixture
def washer_profile():
    return load_fixture("washer_profile.json")


@pytest.fixture
def washer_status():
    return load_fixture("washer_status.json")


@pytest.fixture
def engine():
    """Capability engine over the bundled catalog and descriptor files."""
    return CapabilityEngine.from_directory(BUNDLED_CAPABILITIES_DIR)


@pytest.fixture
def mock_client(tmp_state_file, ac_profile, ac_status, fridge_profile, fridge_status):
    """Return a MockDeviceClient with an air conditioner and a refrigerator."""
    client = MockDeviceClient(state_file=tmp_state_file)
    client.add_device("ac-1", "DEVICE_AIR_CONDITIONER", ac_profile, ac_status, alias="Bedroom AC")
    client.add_device("fridge-1", "DEVICE_REFRIGERATOR", fridge_profile, fridge_status)
    return client
