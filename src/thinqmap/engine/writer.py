"""Write Engine: build vendor control payloads for property changes.

``build_payload`` returns None when the ident is unknown or no write
strategy applies. Callers must treat None as "not handled here", which is
different from an empty payload.
"""

import copy
import logging
import re
from collections.abc import Mapping
from typing import Any, Callable, Optional, Union

from thinqmap.engine.descriptors import (
    ArrayTemplateWrite,
    AttributeWrite,
    Clamp,
    CompositeWrite,
    Descriptor,
    DescriptorStore,
    EnumMapWrite,
    FirstOfWrite,
    MultiAttributeWrite,
    TemplateWrite,
    WriteStrategy,
    canonical_token,
    coerce_value,
)
from thinqmap.engine.flatten import densify, find_array_index, set_by_path, strip_numeric_segments
from thinqmap.engine.probe import ProfileProbe
from thinqmap.i18n.text import is_default_location

logger = logging.getLogger(__name__)

PropertyValues = Union[Callable[[str], Any], Mapping[str, Any]]

# "relativeHourToStart", "relative_minute_to_stop", "HOURS_TO_START"
TIMER_PAIR_PATTERN = re.compile(r"(hour|minute)(s?_?to_?(?:start|stop))", re.IGNORECASE)


def _bool(value: Any) -> bool:
    try:
        return coerce_value("boolean", value)
    except ValueError:
        return bool(value)


# Checked in order; the first placeholder found in a string decides the result
PLACEHOLDERS: tuple[tuple[str, Callable[[Any], Any]], ...] = (
    ("@bool", _bool),
    ("@int", lambda v: coerce_value("integer", v)),
    ("@float", lambda v: coerce_value("float", v)),
    ("@string", lambda v: coerce_value("string", v)),
    ("@onoff", lambda v: "ON" if _bool(v) else "OFF"),
    ("@startstop", lambda v: "START" if _bool(v) else "STOP"),
    ("@power_on_off", lambda v: "POWER_ON" if _bool(v) else "POWER_OFF"),
)


def substitute(node: Any, value: Any) -> Any:
    """Return a copy of ``node`` with placeholder strings replaced by ``value``.

    Raises:
        ValueError: If a placeholder cannot convert the value
    """
    if isinstance(node, dict):
        return {k: substitute(v, value) for k, v in node.items()}
    if isinstance(node, list):
        return [substitute(v, value) for v in node]
    if isinstance(node, str):
        for token, convert in PLACEHOLDERS:
            if token in node:
                return convert(value)
    return node


def minutes_to_hm(total: Any) -> tuple[int, int]:
    minutes = coerce_value("integer", total)
    return minutes // 60, minutes % 60


DECOMPOSERS = {
    "minutes_to_hm": minutes_to_hm,
}


def timer_sibling(key: str) -> Optional[str]:
    """``relativeHourToStart`` -> ``relativeMinuteToStart`` and back, case preserved."""
    match = TIMER_PAIR_PATTERN.search(key)
    if not match:
        return None
    unit = match.group(1)
    other = "minute" if unit.lower() == "hour" else "hour"
    if unit.isupper():
        other = other.upper()
    elif unit[0].isupper():
        other = other.capitalize()
    return key[: match.start(1)] + other + key[match.end(1):]


class WriteEngine:
    """Synthesize control payloads from descriptors.

    The engine keeps no state between calls. Sibling property values, the
    status snapshot and profile ranges are passed in or probed fresh on
    every call.

    Args:
        descriptors: Descriptor store of the device
        probe: Probe over the device's flattened profile
    """

    def __init__(self, descriptors: DescriptorStore, probe: ProfileProbe):
        self.descriptors = descriptors
        self.probe = probe
        self._idents_by_path = self._index_paths(descriptors)

    def build_payload(
        self,
        ident: str,
        value: Any,
        flat_status: Optional[dict[str, Any]] = None,
        property_values: Optional[PropertyValues] = None,
    ) -> Optional[dict[str, Any]]:
        """Build the payload for setting ``ident`` to ``value``.

        Args:
            ident: Descriptor identifier
            value: Requested value
            flat_status: Flattened current status, used to locate array elements
            property_values: Current values of bound properties, by ident. Used
                to complete hour/minute timer pairs.

        Returns:
            Nested payload dict, or None if the ident is not handled
        """
        descriptor = self.descriptors.get(ident)
        if descriptor is None or descriptor.write is None:
            logger.debug(f"No write definition for {ident}")
            return None

        spec = descriptor.write
        if spec.clamp is not None:
            value = spec.clamp.apply(value)

        flat = flat_status or self.probe.flat
        payload = None
        try:
            for strategy in spec.strategies:
                payload = self._apply(strategy, descriptor, value, flat)
                if payload is not None:
                    break
        except ValueError as e:
            logger.warning(f"Cannot build payload for {ident}={value!r}: {e}")
            return None

        if payload is None:
            logger.debug(f"No write strategy applied for {ident}={value!r}")
            return None

        self._complete_timer_pairs(payload, "", property_values)
        logger.info(f"Built control payload for {ident}: {payload}")
        return payload

    # -- strategies ---------------------------------------------------------

    def _apply(
        self, strategy: WriteStrategy, descriptor: Descriptor, value: Any, flat: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        if isinstance(strategy, CompositeWrite):
            return self._composite(strategy, value)
        if isinstance(strategy, EnumMapWrite):
            return self._enum_map(strategy, value)
        if isinstance(strategy, ArrayTemplateWrite):
            return self._array_template(strategy, value, flat)
        if isinstance(strategy, TemplateWrite):
            return substitute(strategy.template, descriptor.coerce(value))
        if isinstance(strategy, AttributeWrite):
            return self._attribute(strategy, descriptor, value)
        if isinstance(strategy, MultiAttributeWrite):
            return self._multi_attribute(strategy, descriptor, value)
        if isinstance(strategy, FirstOfWrite):
            return self._first_of(strategy, descriptor, value, flat)
        return None

    def _composite(self, strategy: CompositeWrite, value: Any) -> Optional[dict[str, Any]]:
        decompose = DECOMPOSERS.get(strategy.decompose)
        if decompose is None:
            logger.warning(f"Unknown decomposer {strategy.decompose!r}")
            return None
        out: dict[str, Any] = {}
        for path, part in zip(strategy.targets, decompose(value)):
            set_by_path(out, path, part)
        return out

    def _enum_map(self, strategy: EnumMapWrite, value: Any) -> Optional[dict[str, Any]]:
        key = canonical_token(value)
        fields = strategy.mapping.get(key)
        if fields is None:
            upper = key.upper()
            fields = next((v for k, v in strategy.mapping.items() if k.upper() == upper), None)
        if fields is None:
            return None
        out: dict[str, Any] = {}
        for path, constant in fields.items():
            set_by_path(out, str(path), copy.deepcopy(constant))
        return out

    def _array_template(
        self, strategy: ArrayTemplateWrite, value: Any, flat: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        index = find_array_index(flat, strategy.container, strategy.where)
        if index is None:
            logger.debug(f"No element of {strategy.container!r} matches {strategy.where}")
            return None

        base = f"{strategy.container}.{index}"
        out: dict[str, Any] = {}
        for key, expected in strategy.where.items():
            set_by_path(out, f"{base}.{key}", expected)
        inner = f"{base}.{strategy.path}" if strategy.path else base
        for key, template in strategy.set.items():
            set_by_path(out, f"{inner}.{key}", substitute(template, value))
        return densify(out)

    def _attribute(self, strategy: AttributeWrite, descriptor: Descriptor, value: Any) -> dict[str, Any]:
        if strategy.clamp_from_profile:
            low, high = self.probe.write_range(strategy.resource, strategy.property, strategy.location)
            value = Clamp(min=low, max=high).apply(value)
        if strategy.value_template:
            value = substitute(strategy.value_template, value)
        else:
            value = descriptor.coerce(value)

        body: dict[str, Any] = copy.deepcopy(strategy.extra)
        if not is_default_location(strategy.location):
            body["locationName"] = strategy.location
        body[strategy.property] = value

        out: dict[str, Any] = {}
        set_by_path(out, strategy.resource, body)
        return out

    def _multi_attribute(
        self, strategy: MultiAttributeWrite, descriptor: Descriptor, value: Any
    ) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for item in strategy.items:
            item_value = copy.deepcopy(item.value) if item.has_value else value
            if item.clamp is not None:
                item_value = item.clamp.apply(item_value)
            if item.value_template:
                item_value = substitute(item.value_template, item_value)
            elif not item.has_value:
                item_value = descriptor.coerce(item_value)

            if not is_default_location(item.location):
                set_by_path(out, f"{item.resource}.locationName", item.location)
            set_by_path(out, item.path, item_value)
        return out

    def _first_of(
        self, strategy: FirstOfWrite, descriptor: Descriptor, value: Any, flat: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        for option in strategy.options:
            if option.writeable_any:
                keys = option.writeable_any
                writable = self.probe.writable_any(keys) or any(
                    self.probe.base_path_writable(k) for k in keys
                )
                if not writable:
                    continue
            elif option.has_any:
                if not any(self.probe.has_key(k) or self.probe.contains(k) for k in option.has_any):
                    continue
            payload = self._apply(option.strategy, descriptor, value, flat)
            if payload is not None:
                return payload
        return None

    # -- timer pairing ------------------------------------------------------

    def _complete_timer_pairs(
        self, node: Any, path: str, property_values: Optional[PropertyValues]
    ) -> None:
        """Make every hour/minute timer field in the payload travel with its sibling."""
        if isinstance(node, list):
            for i, child in enumerate(node):
                self._complete_timer_pairs(child, f"{path}.{i}" if path else str(i), property_values)
            return
        if not isinstance(node, dict):
            return

        location = node.get("locationName")
        for key in list(node):
            child_path = f"{path}.{key}" if path else str(key)
            if isinstance(node[key], (dict, list)):
                self._complete_timer_pairs(node[key], child_path, property_values)
                continue
            sibling = timer_sibling(str(key))
            if sibling is None or sibling in node:
                continue
            sibling_path = f"{path}.{sibling}" if path else sibling
            node[sibling] = self._sibling_value(sibling_path, location, property_values)
            logger.debug(f"Paired timer field {child_path} with {sibling_path}={node[sibling]}")

    def _sibling_value(
        self, path: str, location: Optional[str], property_values: Optional[PropertyValues]
    ) -> int:
        if property_values is None:
            return 0
        key = strip_numeric_segments(path)
        candidates = self._idents_by_path.get((key, location)) or self._idents_by_path.get((key, None)) or []
        for ident in candidates:
            if isinstance(property_values, Mapping):
                current = property_values.get(ident)
            else:
                current = property_values(ident)
            if current is None:
                continue
            try:
                return coerce_value("integer", current)
            except ValueError:
                continue
        return 0

    @staticmethod
    def _index_paths(descriptors: DescriptorStore) -> dict[tuple[str, Optional[str]], list[str]]:
        """Map (status path, location) to the idents bound to it."""
        index: dict[tuple[str, Optional[str]], list[str]] = {}

        def add(path: str, location: Optional[str], ident: str) -> None:
            location = None if is_default_location(location) else location
            bucket = index.setdefault((strip_numeric_segments(path), location), [])
            if ident not in bucket:
                bucket.append(ident)

        for descriptor in descriptors:
            for path in descriptor.read.paths():
                add(path, descriptor.location, descriptor.ident)
            if descriptor.read.array is not None:
                selector = descriptor.read.array
                add(f"{selector.container}.{selector.path}", descriptor.location, descriptor.ident)
            if descriptor.write is not None:
                for path, location in descriptor.write.attribute_paths():
                    add(path, location or descriptor.location, descriptor.ident)
        return index
