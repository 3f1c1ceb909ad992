"""Plan Builder: decide which descriptors become bound properties and how."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Optional

from thinqmap.engine.descriptors import (
    ALWAYS,
    PROFILE_HAS_ALL,
    PROFILE_HAS_ANY,
    PROFILE_WRITABLE_ANY,
    STATUS_HAS_ANY,
    Descriptor,
    Presentation,
)
from thinqmap.engine.probe import ProfileProbe, status_has_any
from thinqmap.engine.reader import ReadEngine

logger = logging.getLogger(__name__)

Translate = Callable[[str], str]


def _identity(text: str) -> str:
    return text


@dataclass
class PlanEntry:
    """Planning result for one descriptor."""

    ident: str
    type: str
    name: str
    hidden: bool = False
    should_create: bool = False
    presentation: Optional[dict[str, Any]] = None
    enable_action: bool = False
    initial_value: Optional[Any] = None
    reassert_on: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        out = {
            "ident": self.ident,
            "type": self.type,
            "name": self.name,
            "hidden": self.hidden,
            "shouldCreate": self.should_create,
            "presentation": self.presentation,
            "enableAction": self.enable_action,
        }
        if self.initial_value is not None:
            out["initialValue"] = self.initial_value
        return out


def default_digits(step: Optional[float]) -> int:
    if step is None or step >= 1:
        return 0
    if step >= 0.5:
        return 1
    return 2


def should_create(descriptor: Descriptor, probe: ProfileProbe, flat_status: dict[str, Any]) -> bool:
    rule = descriptor.create
    if rule.when == ALWAYS:
        return True
    if not rule.keys:
        return False
    if rule.when == PROFILE_HAS_ANY:
        return probe.has_any(rule.keys)
    if rule.when == PROFILE_HAS_ALL:
        return probe.has_all(rule.keys)
    if rule.when == STATUS_HAS_ANY:
        return status_has_any(flat_status, rule.keys)
    return False


def writable_keys(descriptor: Descriptor) -> tuple[str, ...]:
    """Keys tested for writability; attribute targets when none are declared."""
    if descriptor.action.writeable_keys:
        return descriptor.action.writeable_keys
    if descriptor.write is None:
        return ()
    return tuple(path for path, _ in descriptor.write.attribute_paths())


def action_enabled(descriptor: Descriptor, probe: ProfileProbe) -> bool:
    enable_when = descriptor.action.enable_when
    if enable_when == ALWAYS:
        return True
    if enable_when == PROFILE_WRITABLE_ANY:
        return probe.writable_any(writable_keys(descriptor))
    return False


class PlanBuilder:
    """Build the ordered property plan for a device.

    Args:
        reader: Read Engine used to resolve initial values
        translate: Localization hook for names and option captions
    """

    def __init__(self, reader: ReadEngine, translate: Optional[Translate] = None):
        self.reader = reader
        self.translate = translate or _identity

    def build(
        self,
        descriptors: Iterable[Descriptor],
        probe: ProfileProbe,
        flat_status: dict[str, Any],
    ) -> list[PlanEntry]:
        plan = []
        for descriptor in descriptors:
            create = should_create(descriptor, probe, flat_status)
            entry = PlanEntry(
                ident=descriptor.ident,
                type=descriptor.type,
                name=self.translate(descriptor.name),
                hidden=descriptor.hidden,
                should_create=create,
                presentation=self._presentation(descriptor, probe),
                enable_action=create and action_enabled(descriptor, probe),
                reassert_on=descriptor.action.reassert_on,
            )
            if create:
                entry.initial_value = self.reader.read(descriptor, flat_status, probe.flat)
            logger.debug(
                f"Plan {entry.ident}: create={entry.should_create} action={entry.enable_action}"
            )
            plan.append(entry)
        return plan

    def _presentation(self, descriptor: Descriptor, probe: ProfileProbe) -> Optional[dict[str, Any]]:
        presentation = descriptor.presentation
        if presentation is None:
            return None
        presentation = self._resolve_range(presentation, probe)
        if presentation.kind == "slider" and presentation.digits is None:
            presentation = replace(presentation, digits=default_digits(presentation.step))
        if presentation.options:
            options = tuple(
                {**o, "caption": self.translate(str(o.get("caption", o.get("value", ""))))}
                for o in presentation.options
            )
            presentation = replace(presentation, options=options)
        return presentation.to_dict()

    @staticmethod
    def _resolve_range(presentation: Presentation, probe: ProfileProbe) -> Presentation:
        if not presentation.range_from_profile:
            return presentation
        resolved = {}
        for key in ("min", "max", "step"):
            if getattr(presentation, key) is not None:
                continue
            paths = presentation.range_from_profile.get(key, ())
            value = probe.first_number(paths)
            if value is not None:
                resolved[key] = value
        return replace(presentation, **resolved) if resolved else presentation
