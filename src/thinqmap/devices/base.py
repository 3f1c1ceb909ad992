"""Base client interface for the ThinQ device cloud."""

from abc import ABC, abstractmethod
from typing import Any


class BaseDeviceClient(ABC):
    """Abstract base class for clients that talk to the appliance cloud.

    The capability engine never performs I/O itself; a client fetches the
    documents it transforms and delivers the payloads it builds.
    """

    @abstractmethod
    async def list_devices(self) -> list[dict[str, Any]]:
        """Return the account's devices.

        Returns:
            list of dicts, each with at least ``deviceId`` and, when known,
            ``deviceType`` (e.g. ``DEVICE_WASHER``)
        """
        pass

    @abstractmethod
    async def get_profile(self, device_id: str) -> dict[str, Any]:
        """Return the capability profile of a device."""
        pass

    @abstractmethod
    async def get_status(self, device_id: str) -> dict[str, Any]:
        """Return the current status snapshot of a device."""
        pass

    @abstractmethod
    async def control(self, device_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a control payload to a device.

        Args:
            device_id: Target device
            payload: Nested control body built by the capability engine

        Returns:
            dict with keys:
                - success: bool indicating if the command was accepted
                - message: str describing the result
        """
        pass
