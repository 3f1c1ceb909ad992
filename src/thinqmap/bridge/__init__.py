"""Host-side bridge between property plans and bound properties."""

from thinqmap.bridge.property_store import BoundProperty, MaintainProperty, PropertyStore

__all__ = ["BoundProperty", "MaintainProperty", "PropertyStore"]
