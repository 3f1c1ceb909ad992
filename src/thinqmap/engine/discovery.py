"""Auto-discovery of bindable properties from a device profile.

Each schema leaf that declares a ``type`` becomes one ``AutoPlanEntry``.
Resources replicated per location (an array of objects carrying
``locationName``) yield one entry per location.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from thinqmap.engine.descriptors import (
    ALWAYS,
    NEVER,
    ActionSpec,
    ArraySelector,
    AttributeWrite,
    CreateRule,
    Descriptor,
    Presentation,
    ReadSpec,
    WriteSpec,
)
from thinqmap.engine.probe import mode_has_w
from thinqmap.i18n.enum_translator import EnumTranslator
from thinqmap.i18n.property_names import PropertyNamer
from thinqmap.i18n.text import camel_to_snake, is_default_location

logger = logging.getLogger(__name__)

# Hour/minute countdown fields arm the timer even when the profile marks them read-only
TIMER_WRITABLE_PATTERN = re.compile(
    r"hour.*to.*start|minute.*to.*start|hour.*to.*stop|minute.*to.*stop", re.IGNORECASE
)

# Timer-enable flags report arming state only; they are never the control surface
TIMER_FLAG_PATTERN = re.compile(r"(START|STOP)_TIMER$")

TIMER_FLAG_TRUE = ("SET",)
TIMER_FLAG_FALSE = ("UNSET",)

# Checked in order, the last match wins ("remain_minute" -> " min")
_SUFFIXES = (
    ("temperature", " °C"),
    ("humidity", " %"),
    ("hour", " h"),
    ("minute", " min"),
    ("second", " s"),
    ("percent", " %"),
)


@dataclass
class AutoPlanEntry:
    """One property derived from a profile schema leaf."""

    ident: str
    name: str
    type: str
    path: str
    resource: str
    property: str
    location: Optional[str] = None
    readable: bool = True
    writeable: bool = False
    presentation: Optional[Presentation] = None
    range: Optional[dict[str, Any]] = None
    enum: Optional[list[str]] = None
    meta: dict[str, Any] = field(default_factory=dict)
    # Declared as one element of a per-location array
    located: bool = False

    @property
    def is_timer_flag(self) -> bool:
        return bool(TIMER_FLAG_PATTERN.search(self.ident))


def normalize_profile(profile: Any) -> dict[str, Any]:
    """Reduce the known profile wrapping variants to one resource map.

    Handles ``{"property": [{...}]}``, ``{"property": {...}}`` and an
    already-unwrapped resource map. Anything else yields ``{}``.
    """
    if isinstance(profile, list):
        profile = profile[0] if profile and isinstance(profile[0], dict) else {}
    if not isinstance(profile, dict):
        return {}

    wrapped = profile.get("property")
    if isinstance(wrapped, list):
        first = wrapped[0] if wrapped else None
        return first if isinstance(first, dict) else {}
    if isinstance(wrapped, dict):
        return wrapped
    return profile


def is_multi_location(data: Any) -> bool:
    """True for an array whose first element holds typed property objects."""
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return False
    return any(
        key != "locationName" and isinstance(value, dict) and "type" in value
        for key, value in data[0].items()
    )


def build_ident(resource: str, prop: str, location: Optional[str] = None) -> str:
    """``("timer", "relativeHourToStart")`` -> ``TIMER_RELATIVE_HOUR_TO_START``."""
    base = f"{camel_to_snake(resource).upper()}_{camel_to_snake(prop).upper()}"
    if not is_default_location(location):
        return f"{location.upper()}_{base}"
    return base


def _has_mode(meta: dict[str, Any], flag: str) -> bool:
    mode = meta.get("mode")
    if flag == "w":
        return mode_has_w(mode)
    if isinstance(mode, str):
        return flag in mode.lower()
    if isinstance(mode, list):
        return any(isinstance(m, str) and flag in m.lower() for m in mode)
    return False


def _value_block(meta: dict[str, Any]) -> Any:
    value = meta.get("value")
    if not isinstance(value, dict):
        return None
    return value.get("w") if value.get("w") is not None else value.get("r")


def extract_range(meta: dict[str, Any]) -> Optional[dict[str, Any]]:
    if str(meta.get("type", "")).lower() not in ("range", "number"):
        return None
    block = _value_block(meta)
    if not isinstance(block, dict):
        return None
    result = {
        "min": block.get("min", 0),
        "max": block.get("max", 100),
        "step": block.get("step", 1),
    }
    if isinstance(block.get("except"), list):
        result["except"] = list(block["except"])
    return result


def extract_enum(meta: dict[str, Any]) -> Optional[list[str]]:
    if str(meta.get("type", "")).lower() != "enum":
        return None
    block = _value_block(meta)
    return [str(v) for v in block] if isinstance(block, list) else None


def _is_integral(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


class ProfileAutoDiscoverer:
    """Derive auto-plan entries from a device profile.

    Args:
        language: Language for generated names and enum captions
        namer: Property-name resolver, defaults to one for ``language``
        enum_translator: Enum caption resolver, defaults to one for ``language``
    """

    def __init__(
        self,
        language: str = "en",
        namer: Optional[PropertyNamer] = None,
        enum_translator: Optional[EnumTranslator] = None,
    ):
        self.language = language
        self.namer = namer or PropertyNamer(language)
        self.enum_translator = enum_translator or EnumTranslator(language)

    def discover(self, profile: Any) -> list[AutoPlanEntry]:
        """Walk a profile and emit one entry per typed schema leaf.

        Malformed or empty profiles yield an empty list.
        """
        resources = normalize_profile(profile)
        entries: dict[str, AutoPlanEntry] = {}

        for resource, data in resources.items():
            resource = str(resource)
            if is_multi_location(data):
                for idx, loc_data in enumerate(data):
                    if not isinstance(loc_data, dict):
                        continue
                    location = str(loc_data.get("locationName") or f"LOC_{idx}")
                    self._parse_resource(entries, resource, loc_data, location, located=True)
            elif isinstance(data, dict) and data.get("locationName"):
                self._parse_resource(entries, resource, data, str(data["locationName"]))
            elif isinstance(data, dict):
                self._parse_resource(entries, resource, data)

        logger.debug(f"Auto-discovered {len(entries)} properties")
        return list(entries.values())

    def _parse_resource(
        self,
        entries: dict[str, AutoPlanEntry],
        resource: str,
        data: dict[str, Any],
        location: Optional[str] = None,
        located: bool = False,
    ) -> None:
        for prop, meta in data.items():
            if prop == "locationName" or not isinstance(meta, dict) or "type" not in meta:
                continue

            writeable = _has_mode(meta, "w")
            if TIMER_WRITABLE_PATTERN.search(prop):
                writeable = True

            ident = build_ident(resource, prop, location)
            entry = AutoPlanEntry(
                ident=ident,
                name=self.namer.name_for(prop, resource, location),
                type=self._map_type(meta),
                path=f"{resource}.{prop}",
                resource=resource,
                property=prop,
                location=location,
                readable=_has_mode(meta, "r"),
                writeable=writeable,
                range=extract_range(meta),
                enum=extract_enum(meta),
                meta=meta,
                located=located,
            )
            if entry.is_timer_flag:
                entry.type = "boolean"
                entry.writeable = False
                entry.presentation = Presentation(kind="switch")
            else:
                entry.presentation = self._infer_presentation(meta, prop, entry.writeable)
            entries[ident] = entry

    def _map_type(self, meta: dict[str, Any]) -> str:
        api_type = str(meta.get("type", "")).lower()
        if api_type == "boolean":
            return "boolean"
        if api_type in ("range", "number"):
            rng = extract_range(meta) or {}
            values = [rng.get(k) for k in ("min", "max", "step")]
            if all(_is_integral(v) for v in values if v is not None):
                return "integer"
            return "float"
        return "string"

    def _infer_presentation(self, meta: dict[str, Any], prop: str, writeable: bool) -> Presentation:
        api_type = str(meta.get("type", "")).lower()
        snake = camel_to_snake(prop)

        if api_type == "boolean":
            return Presentation(kind="switch")

        if api_type in ("range", "number"):
            rng = extract_range(meta)
            if rng is None:
                if "hour" in snake:
                    rng = {"min": 0, "max": 24, "step": 1}
                elif "minute" in snake:
                    rng = {"min": 0, "max": 59, "step": 1}
                else:
                    rng = {"min": 0, "max": 100, "step": 1}
            suffix = ""
            for needle, candidate in _SUFFIXES:
                if needle in snake:
                    suffix = candidate
            return Presentation(
                kind="slider" if writeable else "value",
                min=rng["min"],
                max=rng["max"],
                step=rng["step"],
                suffix=suffix,
            )

        if api_type == "enum":
            values = extract_enum(meta) or []
            if values:
                options = tuple(
                    {"value": v, "caption": self.enum_translator.translate(prop, v)}
                    for v in values
                )
                return Presentation(kind="buttons" if writeable else "value", options=options)

        return Presentation(kind="value")


def to_descriptor(entry: AutoPlanEntry) -> Descriptor:
    """Turn an auto-plan entry into a descriptor bound to its profile path."""
    true_values: tuple[str, ...] = ()
    false_values: tuple[str, ...] = ()
    if entry.is_timer_flag:
        true_values, false_values = TIMER_FLAG_TRUE, TIMER_FLAG_FALSE

    if is_default_location(entry.location) and not entry.located:
        read = ReadSpec(
            sources=(entry.path, f"{entry.resource}.0.{entry.property}"),
            true_values=true_values,
            false_values=false_values,
        )
    else:
        read = ReadSpec(
            sources=(entry.path,),
            array=ArraySelector(
                container=entry.resource,
                path=entry.property,
                where={"locationName": entry.location},
                true_values=true_values,
                false_values=false_values,
            ),
            true_values=true_values,
            false_values=false_values,
        )

    write = None
    if entry.writeable:
        write = WriteSpec(
            strategies=(
                AttributeWrite(
                    resource=entry.resource,
                    property=entry.property,
                    location=entry.location,
                    extra={"locationName": entry.location} if entry.located else {},
                    clamp_from_profile=entry.range is not None,
                ),
            )
        )

    return Descriptor(
        ident=entry.ident,
        name=entry.name,
        type=entry.type,
        location=entry.location,
        create=CreateRule(when=ALWAYS),
        read=read,
        write=write,
        action=ActionSpec(enable_when=ALWAYS if entry.writeable else NEVER),
        presentation=entry.presentation,
        origin="auto",
    )
