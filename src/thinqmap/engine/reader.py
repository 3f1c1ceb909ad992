"""Read Engine: resolve a descriptor's current value from a status snapshot."""

import logging
from typing import Any, Optional

from thinqmap.engine.descriptors import ArraySelector, Descriptor, ReadSpec, canonical_token
from thinqmap.engine.flatten import find_array_index

logger = logging.getLogger(__name__)


def hm_to_minutes(hours: Any, minutes: Any) -> int:
    return int(_to_number(hours)) * 60 + int(_to_number(minutes))


COMBINERS = {
    "hm_to_minutes": hm_to_minutes,
}


def _to_number(value: Any) -> float:
    if value is None:
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def translate_map(value: Any, mapping: dict[str, Any], case_insensitive: bool) -> Any:
    """Translate ``value`` through ``mapping``; unmapped values pass through."""
    key = canonical_token(value)
    if key in mapping:
        return mapping[key]
    if case_insensitive:
        upper = key.upper()
        for map_key, mapped in mapping.items():
            if str(map_key).upper() == upper:
                return mapped
    return value


def apply_bool_tokens(value: Any, true_values: tuple[str, ...], false_values: tuple[str, ...]) -> Any:
    if not true_values and not false_values:
        return value
    token = canonical_token(value).upper()
    if token in (t.upper() for t in true_values):
        return True
    if token in (f.upper() for f in false_values):
        return False
    return value


class ReadEngine:
    """Resolve values for descriptors.

    Args:
        case_insensitive: Default for value-map matching when a descriptor
            does not set ``mapCaseInsensitive`` itself
    """

    def __init__(self, case_insensitive: bool = True):
        self.case_insensitive = case_insensitive

    def read(
        self,
        descriptor: Descriptor,
        flat_status: dict[str, Any],
        flat_profile: Optional[dict[str, Any]] = None,
    ) -> Optional[Any]:
        """Current value of ``descriptor``, or None when no source is populated.

        Resolution order: mapped sources, array element, composite, plain
        sources. A None result means "leave the displayed value alone".
        """
        spec = descriptor.read
        ci = self.case_insensitive if spec.map_case_insensitive is None else spec.map_case_insensitive

        if spec.sources and spec.value_map:
            value = self._first_source(spec, flat_status)
            if value is not None:
                return translate_map(value, spec.value_map, ci)

        if spec.array is not None:
            value = self._read_array(spec.array, flat_status or flat_profile or {}, ci)
            if value is not None:
                return value

        if spec.composite is not None:
            combine = COMBINERS.get(spec.composite.combine)
            if combine is None:
                logger.warning(f"{descriptor.ident}: unknown combinator {spec.composite.combine!r}")
            else:
                hours = flat_status.get(spec.composite.parts[0])
                minutes = flat_status.get(spec.composite.parts[1])
                if hours is not None or minutes is not None:
                    return combine(hours, minutes)

        value = self._first_source(spec, flat_status)
        if value is not None:
            return apply_bool_tokens(value, spec.true_values, spec.false_values)
        return None

    def _first_source(self, spec: ReadSpec, flat: dict[str, Any]) -> Optional[Any]:
        for path in spec.sources:
            value = flat.get(path)
            if value is not None:
                return value
        return None

    def _read_array(self, selector: ArraySelector, flat: dict[str, Any], ci: bool) -> Optional[Any]:
        index = find_array_index(flat, selector.container, selector.where)
        if index is None:
            return None
        value = flat.get(f"{selector.container}.{index}.{selector.path}")
        if value is None:
            return None
        if selector.value_map:
            return translate_map(value, selector.value_map, ci)
        return apply_bool_tokens(value, selector.true_values, selector.false_values)
