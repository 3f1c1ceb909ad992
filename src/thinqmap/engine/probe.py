"""Presence and writability probes over a flattened device profile.

The same logical schema arrives in several nesting shapes depending on the
device family and on how the profile was enveloped upstream:

* ``timer.relativeHourToStart.mode``            (already unwrapped)
* ``property.timer.relativeHourToStart.mode``   (property envelope)
* ``property.0.timer.relativeHourToStart.mode`` (array-wrapped)
* ``profile.value.property.0.timer...``         (full API response)

Every probe walks the fixed ``WRAPPER_PREFIXES`` list in order. New
envelope shapes are supported by adding a prefix to that list.
"""

import logging
import re
from typing import Any, Iterable, Optional

from thinqmap.engine.flatten import find_array_index, strip_numeric_segments

logger = logging.getLogger(__name__)

_WRAPPER_INDICES = range(5)


def _build_wrapper_prefixes() -> tuple[str, ...]:
    prefixes = [""]
    for wrap in ("property.", "value.", "profile."):
        prefixes.append(wrap)
        prefixes.extend(f"{wrap}{i}." for i in _WRAPPER_INDICES)
    prefixes.extend(f"value.property.{i}." for i in _WRAPPER_INDICES)
    prefixes.extend(f"profile.value.property.{i}." for i in _WRAPPER_INDICES)
    prefixes.extend(f"profile.property.{i}." for i in _WRAPPER_INDICES)
    return tuple(prefixes)


WRAPPER_PREFIXES: tuple[str, ...] = _build_wrapper_prefixes()

# "x.mode" or "x.mode.<n>" (mode delivered as a list)
_MODE_KEY = re.compile(r"^(?P<base>.+)\.mode(?:\.\d+)?$")
_MODE_OR_TYPE_SUFFIX = re.compile(r"\.(mode|type)$", re.IGNORECASE)


def mode_has_w(mode: Any) -> bool:
    """True if a mode flag (``"rw"``, ``"w"``, ``["r", "w"]``) grants write access."""
    if isinstance(mode, str):
        return "w" in mode.lower()
    if isinstance(mode, (list, tuple)):
        return any(mode_has_w(m) for m in mode)
    return False


class ProfileProbe:
    """Query helpers over one flattened profile.

    Args:
        flat_profile: Output of ``flatten(profile)``
    """

    def __init__(self, flat_profile: dict[str, Any]):
        self.flat = flat_profile
        # base path -> True if any of its mode entries carries "w"
        self._modes: dict[str, bool] = {}
        for key, value in flat_profile.items():
            match = _MODE_KEY.match(key)
            if match:
                base = match.group("base")
                self._modes[base] = self._modes.get(base, False) or mode_has_w(value)

    def has_key(self, key: str) -> bool:
        """Direct presence: the key is a leaf or the root of a subtree."""
        if not key:
            return False
        if key in self.flat:
            return True
        prefix = key + "."
        return any(k.startswith(prefix) for k in self.flat)

    def contains(self, key: str) -> bool:
        """Substring presence, tolerating array-index and wrapper segments."""
        return bool(key) and any(key in k for k in self.flat)

    def has_any(self, keys: Iterable[str]) -> bool:
        keys = [k for k in keys if k]
        if any(self.has_key(k) for k in keys):
            return True
        if any(self.contains(k) for k in keys):
            return True
        return self.writable_any(keys)

    def has_all(self, keys: Iterable[str]) -> bool:
        keys = [k for k in keys if k]
        return bool(keys) and all(self.has_key(k) or self.contains(k) for k in keys)

    def writable_any(self, keys: Iterable[str]) -> bool:
        """True if any key is declared writable in the profile.

        Each key is tried, in order, as: a direct mode flag, a subtree
        containing a writable mode, every wrapper-prefixed variant, a suffix
        of a deeper path, and finally the presence of a ``value.w`` range
        definition under any wrapper.
        """
        for key in keys:
            if key and self._key_writable(key):
                logger.debug(f"Profile probe: {key!r} is writable")
                return True
        return False

    def base_path_writable(self, base_path: str) -> bool:
        """Narrow check: ``<base>.mode`` grants write, or ``<base>...value.w`` exists."""
        if not base_path:
            return False
        if self._modes.get(base_path):
            return True
        prefix = base_path + "."
        return any(k.startswith(prefix) and ".value.w" in k for k in self.flat)

    def first_number(self, paths: Iterable[str]) -> Optional[float]:
        """First numeric value found at any path under any wrapper prefix."""
        for path in paths:
            for wrapper in WRAPPER_PREFIXES:
                value = self.flat.get(wrapper + path)
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    return value
        return None

    def write_range(
        self, resource: str, prop: str, location: Optional[str] = None
    ) -> tuple[Optional[float], Optional[float]]:
        """``(min, max)`` of the writable range declared for ``resource.prop``.

        With ``location`` set, a per-location array is searched for the element
        carrying that ``locationName`` first.
        """
        base = f"{resource}.{prop}"
        if location:
            for wrapper in WRAPPER_PREFIXES:
                index = find_array_index(self.flat, wrapper + resource, {"locationName": location})
                if index is not None:
                    base = f"{resource}.{index}.{prop}"
                    break
        low = self.first_number([f"{base}.value.w.min", f"{base}.value.r.min", f"{base}.value.min"])
        high = self.first_number([f"{base}.value.w.max", f"{base}.value.r.max", f"{base}.value.max"])
        return low, high

    def _key_writable(self, key: str) -> bool:
        base = _MODE_OR_TYPE_SUFFIX.sub("", key)

        for wrapper in WRAPPER_PREFIXES:
            candidate = wrapper + base
            if self._modes.get(candidate):
                return True
            nested = candidate + "."
            if any(ok and b.startswith(nested) for b, ok in self._modes.items()):
                return True

        suffix = "." + base
        if any(ok and b.endswith(suffix) for b, ok in self._modes.items()):
            return True

        for wrapper in WRAPPER_PREFIXES:
            prefix = wrapper + base + "."
            if any(k.startswith(prefix) and ".value.w" in k for k in self.flat):
                return True
        return False


def status_has_any(flat_status: dict[str, Any], keys: Iterable[str]) -> bool:
    """Presence test against a flattened status snapshot.

    Tries direct keys, then substrings, then a comparison with all numeric
    segments removed so ``temperature.0.current`` satisfies
    ``temperature.current``.
    """
    keys = [k for k in keys if k]
    if not keys:
        return False
    if any(k in flat_status for k in keys):
        return True
    if any(k in fk for k in keys for fk in flat_status):
        return True

    stripped = {strip_numeric_segments(fk) for fk in flat_status}
    for key in keys:
        wanted = strip_numeric_segments(key)
        if any(s == wanted or s.startswith(wanted + ".") for s in stripped):
            return True
    return False
