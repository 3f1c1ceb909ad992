"""Device clients and the per-appliance orchestrator."""

from .base import BaseDeviceClient
from .mock_client import MockDeviceClient
from .thinq_device import ThinQDevice

__all__ = ["BaseDeviceClient", "MockDeviceClient", "ThinQDevice"]
