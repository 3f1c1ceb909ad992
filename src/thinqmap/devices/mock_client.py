"""JSON-file backed simulated ThinQ cloud for development and tests."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from thinqmap.devices.base import BaseDeviceClient
from thinqmap.engine.flatten import deep_merge

logger = logging.getLogger(__name__)


class MockDeviceClient(BaseDeviceClient):
    """Simulated appliance cloud.

    Devices, profiles and statuses are persisted to a JSON file so the
    simulated appliances survive server restarts. Control payloads are
    deep-merged into the stored status, the way a real appliance reports
    the state it was asked to take.
    """

    def __init__(self, state_file: Path, seed: Optional[dict[str, Any]] = None):
        self.state_file = state_file
        self.state = self._load_state(seed)
        logger.info(f"MockDeviceClient initialized with {len(self.state['devices'])} devices")

    def _load_state(self, seed: Optional[dict[str, Any]]) -> dict[str, Any]:
        if self.state_file.exists():
            try:
                with open(self.state_file, "r") as f:
                    state = json.load(f)
                    logger.info(f"Loaded state from {self.state_file}")
                    return self._with_defaults(state)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Could not load state file: {e}. Using seed state.")

        return self._with_defaults(seed or {})

    @staticmethod
    def _with_defaults(state: dict[str, Any]) -> dict[str, Any]:
        return {
            "devices": list(state.get("devices") or []),
            "profiles": dict(state.get("profiles") or {}),
            "statuses": dict(state.get("statuses") or {}),
            "last_updated": state.get("last_updated", datetime.now().isoformat()),
        }

    def _save_state(self) -> None:
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state["last_updated"] = datetime.now().isoformat()
            with open(self.state_file, "w") as f:
                json.dump(self.state, f, indent=2)
            logger.debug(f"State saved to {self.state_file}")
        except IOError as e:
            logger.error(f"Failed to save state: {e}")

    def add_device(
        self,
        device_id: str,
        device_type: str,
        profile: dict[str, Any],
        status: Optional[dict[str, Any]] = None,
        alias: str = "",
    ) -> None:
        """Register a simulated device, replacing any previous one with the same id."""
        self.state["devices"] = [d for d in self.state["devices"] if d.get("deviceId") != device_id]
        self.state["devices"].append({"deviceId": device_id, "deviceType": device_type, "alias": alias or device_id})
        self.state["profiles"][device_id] = profile
        self.state["statuses"][device_id] = status or {}
        self._save_state()

    async def list_devices(self) -> list[dict[str, Any]]:
        return [dict(d) for d in self.state["devices"]]

    async def get_profile(self, device_id: str) -> dict[str, Any]:
        return self.state["profiles"].get(device_id, {})

    async def get_status(self, device_id: str) -> dict[str, Any]:
        return self.state["statuses"].get(device_id, {})

    async def control(self, device_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        if device_id not in self.state["statuses"]:
            return {"success": False, "message": f"Unknown device: {device_id}"}

        logger.info(f"Applying control payload to {device_id} (mock): {payload}")
        current = self.state["statuses"][device_id]
        self.state["statuses"][device_id] = self._apply(current, payload)
        self._save_state()
        return {"success": True, "message": "Command accepted"}

    @staticmethod
    def _apply(status: Any, payload: Any) -> Any:
        # A located payload updates the element of a multi-location array
        if isinstance(status, list) and isinstance(payload, dict) and "locationName" in payload:
            merged = []
            for element in status:
                if isinstance(element, dict) and element.get("locationName") == payload["locationName"]:
                    merged.append(deep_merge(element, payload))
                else:
                    merged.append(element)
            return merged
        # Index-keyed payloads update elements in place and leave the others alone
        indexed = MockDeviceClient._indexed(payload) if isinstance(status, list) else None
        if indexed is not None:
            merged = list(status)
            for index, value in sorted(indexed.items()):
                if index < len(merged):
                    merged[index] = MockDeviceClient._apply(merged[index], value)
                else:
                    merged.append(value)
            return merged
        if isinstance(status, dict) and isinstance(payload, dict):
            out = dict(status)
            for key, value in payload.items():
                out[key] = MockDeviceClient._apply(status.get(key), value) if key in status else value
            return out
        return deep_merge(status, payload)

    @staticmethod
    def _indexed(payload: Any) -> Optional[dict[int, Any]]:
        if isinstance(payload, list):
            return dict(enumerate(payload))
        if isinstance(payload, dict) and payload and all(str(k).isdigit() for k in payload):
            return {int(k): v for k, v in payload.items()}
        return None
