"""One ThinQ appliance: fetch documents, plan properties, route actions."""

import logging
from typing import Any, Optional

from thinqmap.bridge.property_store import BoundProperty, MaintainProperty, PropertyStore
from thinqmap.devices.base import BaseDeviceClient
from thinqmap.engine.capability_engine import CapabilityEngine, DeviceCapabilities
from thinqmap.engine.flatten import deep_merge
from thinqmap.engine.planner import PlanEntry

logger = logging.getLogger(__name__)

# Envelopes the cloud wraps around profile documents, outermost first
PROFILE_ENVELOPES = ("response", "profile")


def unwrap_profile(document: Any) -> Any:
    """Strip ``response``/``profile`` envelopes from a profile.

    A ``property`` key is unwrapped only when it is the sole key; next to
    ``notification`` or ``error`` sections it is part of the profile.
    """
    node = document
    for key in PROFILE_ENVELOPES:
        if isinstance(node, dict) and isinstance(node.get(key), dict):
            node = node[key]
    if isinstance(node, dict) and set(node) == {"property"}:
        inner = node["property"]
        if isinstance(inner, list):
            inner = inner[0] if inner and isinstance(inner[0], dict) else {}
        node = inner
    return node if isinstance(node, dict) else {}


def unwrap_status(document: Any) -> dict[str, Any]:
    if isinstance(document, dict) and isinstance(document.get("response"), dict):
        return document["response"]
    return document if isinstance(document, dict) else {}


class ThinQDevice:
    """Bind one appliance's profile and status to a property store.

    Args:
        device_id: Cloud identifier of the appliance
        client: Client used to fetch documents and send control payloads
        engine: Capability engine shared by all devices
        store: Bound-property store, a fresh one by default
        device_type: Known device type; resolved from the cloud when empty
    """

    def __init__(
        self,
        device_id: str,
        client: BaseDeviceClient,
        engine: CapabilityEngine,
        store: Optional[MaintainProperty] = None,
        device_type: str = "",
    ):
        self.device_id = device_id
        self.client = client
        self.engine = engine
        self.store: MaintainProperty = store if store is not None else PropertyStore()
        self.device_type = device_type
        self.capabilities: Optional[DeviceCapabilities] = None
        self.status: dict[str, Any] = {}
        self.plan: list[PlanEntry] = []

    async def setup(self) -> list[BoundProperty]:
        """Fetch profile and status, plan, and reconcile bound properties.

        Safe to call again after a profile change; existing properties are
        kept and updated in place.
        """
        raw_profile = await self.client.get_profile(self.device_id)
        if not self.device_type:
            self.device_type = await self._resolve_device_type(raw_profile)

        profile = unwrap_profile(raw_profile)
        self.status = unwrap_status(await self.client.get_status(self.device_id))
        self.capabilities = self.engine.prepare(self.device_type, profile)
        self.plan = self.capabilities.build_plan(self.status)

        bound = self.store.reconcile(self.plan)
        for ident in self.capabilities.idents_to_enable_on("setup"):
            self.store.enable_action(ident)

        logger.info(f"Set up {self.device_id} ({self.device_type or 'unknown type'}): {len(bound)} properties")
        return bound

    async def update_status(self) -> dict[str, Any]:
        """Fetch a full status snapshot and push values to bound properties."""
        self.status = unwrap_status(await self.client.get_status(self.device_id))
        return self._apply_values()

    def apply_event(self, delta: dict[str, Any]) -> dict[str, Any]:
        """Merge a partial status event onto the retained snapshot.

        Returns:
            The values that were written to bound properties
        """
        self.status = deep_merge(self.status, unwrap_status(delta))
        return self._apply_values()

    async def request_action(self, ident: str, value: Any) -> dict[str, Any]:
        """Build and send the control payload for a property change.

        Returns:
            dict with keys:
                - success: bool indicating if the command was sent and accepted
                - message: str describing the result
                - payload: the payload that was sent, or None if not handled
        """
        if self.capabilities is None:
            return {"success": False, "message": "Device is not set up", "payload": None}

        payload = self.capabilities.build_control_payload(ident, value, self.status, self.store.get_value)
        if payload is None:
            return {
                "success": False,
                "message": f"{ident} is not handled by the capability engine",
                "payload": None,
            }

        result = await self.client.control(self.device_id, payload)
        if result.get("success"):
            self.store.set_value(ident, value)
        return {
            "success": bool(result.get("success")),
            "message": result.get("message", ""),
            "payload": payload,
        }

    def _apply_values(self) -> dict[str, Any]:
        if self.capabilities is None:
            return {}
        applied = {}
        for ident, value in self.capabilities.read_values(self.status).items():
            if ident in self.store and self.store.set_value(ident, value):
                applied[ident] = self.store.get_value(ident)
        logger.debug(f"Applied {len(applied)} values to {self.device_id}")
        return applied

    async def _resolve_device_type(self, raw_profile: Any) -> str:
        for device in await self.client.list_devices():
            if device.get("deviceId") != self.device_id:
                continue
            info = device.get("deviceInfo") if isinstance(device.get("deviceInfo"), dict) else device
            if info.get("deviceType"):
                return str(info["deviceType"])
        if isinstance(raw_profile, dict) and raw_profile.get("deviceType"):
            return str(raw_profile["deviceType"])
        logger.warning(f"No device type known for {self.device_id}, using catalog fallback only")
        return ""
