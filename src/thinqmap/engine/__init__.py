"""Capability mapping engine for ThinQ device profiles."""

from thinqmap.engine.capability_engine import CapabilityEngine, CapabilityRepository, DeviceCapabilities
from thinqmap.engine.catalog import Catalog, load_catalog
from thinqmap.engine.descriptors import Descriptor, DescriptorStore
from thinqmap.engine.discovery import AutoPlanEntry, ProfileAutoDiscoverer
from thinqmap.engine.flatten import deep_merge, flatten, unflatten
from thinqmap.engine.planner import PlanEntry
from thinqmap.engine.reader import ReadEngine
from thinqmap.engine.writer import WriteEngine

__all__ = [
    "AutoPlanEntry",
    "CapabilityEngine",
    "CapabilityRepository",
    "Catalog",
    "Descriptor",
    "DescriptorStore",
    "DeviceCapabilities",
    "PlanEntry",
    "ProfileAutoDiscoverer",
    "ReadEngine",
    "WriteEngine",
    "deep_merge",
    "flatten",
    "load_catalog",
    "unflatten",
]
