"""Capability engine facade.

Composes the catalog, descriptor files, auto-discovery, planning, reading
and payload building for one (device type, profile) pair:

    engine = CapabilityEngine.from_directory(capabilities_dir)
    caps = engine.prepare("DEVICE_AIR_CONDITIONER", profile)
    plan = caps.build_plan(status)
    payload = caps.build_control_payload("TIMER_START_REL_HOUR", 2, status, values)
"""

import logging
from pathlib import Path
from typing import Any, Optional

from thinqmap.engine.catalog import Catalog, load_catalog
from thinqmap.engine.descriptors import (
    Descriptor,
    DescriptorStore,
    load_descriptor_files,
    synthetic_descriptors,
)
from thinqmap.engine.discovery import ProfileAutoDiscoverer, to_descriptor
from thinqmap.engine.flatten import flatten
from thinqmap.engine.planner import PlanBuilder, PlanEntry, Translate, action_enabled
from thinqmap.engine.probe import ProfileProbe
from thinqmap.engine.reader import ReadEngine
from thinqmap.engine.writer import PropertyValues, WriteEngine

logger = logging.getLogger(__name__)

CATALOG_FILE = "catalog.json"


class CapabilityRepository:
    """Catalog plus descriptor files from one directory.

    The catalog is parsed once when the repository is built and is
    read-only afterwards, so one repository can serve many devices.
    """

    def __init__(self, directory: Path, catalog: Optional[Catalog] = None):
        self.directory = Path(directory)
        self.catalog = catalog if catalog is not None else load_catalog(self.directory / CATALOG_FILE)

    def resolve_files(self, device_type: str, profile: Any = None) -> list[str]:
        return self.catalog.resolve(device_type, profile)

    def load_descriptors(self, device_type: str, profile: Any = None) -> list[Descriptor]:
        """Curated descriptors for a device; later files override earlier ones."""
        files = self.resolve_files(device_type, profile)
        return load_descriptor_files(self.directory, files)


class DeviceCapabilities:
    """Descriptors and engines bound to one device profile."""

    def __init__(
        self,
        device_type: str,
        profile: Any,
        store: DescriptorStore,
        reader: ReadEngine,
        planner: PlanBuilder,
    ):
        self.device_type = device_type
        self.profile = profile
        self.flat_profile = flatten(profile)
        self.probe = ProfileProbe(self.flat_profile)
        self.store = store
        self.reader = reader
        self.planner = planner
        self.writer = WriteEngine(store, self.probe)

    @property
    def descriptors(self) -> list[Descriptor]:
        return self.store.all()

    def get_descriptor(self, ident: str) -> Optional[Descriptor]:
        return self.store.get(ident)

    def build_plan(self, status: Any = None) -> list[PlanEntry]:
        """Ordered plan, one entry per descriptor."""
        return self.planner.build(self.store, self.probe, flatten(status))

    def read(self, ident: str, status: Any) -> Optional[Any]:
        descriptor = self.store.get(ident)
        if descriptor is None:
            return None
        return self.reader.read(descriptor, flatten(status), self.flat_profile)

    def read_values(self, status: Any) -> dict[str, Any]:
        """Values of every descriptor that resolves against ``status``."""
        flat = flatten(status)
        values = {}
        for descriptor in self.store:
            value = self.reader.read(descriptor, flat, self.flat_profile)
            if value is not None:
                values[descriptor.ident] = value
        return values

    def build_control_payload(
        self,
        ident: str,
        value: Any,
        status: Any = None,
        property_values: Optional[PropertyValues] = None,
    ) -> Optional[dict[str, Any]]:
        """Control payload for ``ident``, or None if this layer does not handle it."""
        flat_status = flatten(status) if status else None
        return self.writer.build_payload(ident, value, flat_status, property_values)

    def idents_to_enable(self) -> list[str]:
        return [d.ident for d in self.store if action_enabled(d, self.probe)]

    def idents_to_enable_on(self, moment: str) -> list[str]:
        """Idents that re-assert their action at ``moment`` (e.g. ``"setup"``)."""
        moment = moment.lower()
        return [
            d.ident
            for d in self.store
            if moment in d.action.reassert_on and action_enabled(d, self.probe)
        ]


class CapabilityEngine:
    """Entry point that turns a device type and profile into capabilities.

    Args:
        repository: Catalog and descriptor files
        language: Language for auto-discovered names and captions
        translate: Localization hook for plan names and captions
        enum_case_insensitive: Default for value-map matching
    """

    def __init__(
        self,
        repository: CapabilityRepository,
        language: str = "en",
        translate: Optional[Translate] = None,
        enum_case_insensitive: bool = True,
    ):
        self.repository = repository
        self.discoverer = ProfileAutoDiscoverer(language=language)
        self.reader = ReadEngine(case_insensitive=enum_case_insensitive)
        self.planner = PlanBuilder(self.reader, translate=translate)

    @classmethod
    def from_directory(cls, directory: Path, **kwargs: Any) -> "CapabilityEngine":
        return cls(CapabilityRepository(directory), **kwargs)

    @classmethod
    def from_config(cls, config: Any, translate: Optional[Translate] = None) -> "CapabilityEngine":
        return cls(
            CapabilityRepository(config.capabilities_dir),
            language=config.language,
            translate=translate,
            enum_case_insensitive=config.enum_case_insensitive,
        )

    def prepare(self, device_type: str, profile: Any) -> DeviceCapabilities:
        """Build the descriptor set for one device.

        Curated descriptors win, auto-discovered ones fill the gaps and
        synthetic trackers are appended when the profile has their section.
        """
        if profile is not None and not isinstance(profile, (dict, list)):
            logger.warning(f"Ignoring malformed profile for {device_type!r}: {type(profile).__name__}")
            profile = None

        manual = self.repository.load_descriptors(device_type or "", profile)
        auto = [to_descriptor(e) for e in self.discoverer.discover(profile)]
        synthetic = synthetic_descriptors(flatten(profile))
        store = DescriptorStore(manual=manual, auto=auto, synthetic=synthetic)

        logger.info(
            f"Prepared {len(store)} descriptors for {device_type!r} "
            f"({len(manual)} curated, {len(auto)} discovered, {len(synthetic)} synthetic)"
        )
        return DeviceCapabilities(device_type, profile, store, self.reader, self.planner)
