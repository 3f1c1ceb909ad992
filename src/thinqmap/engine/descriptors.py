"""Capability descriptor model, descriptor files and the descriptor store.

A descriptor binds one logical property (``ident``) to its creation rule,
read spec, write spec, action rule and presentation hint. Descriptor files
are JSON, either a bare list of descriptor objects or
``{"capabilities": [...]}``:

    {
      "ident": "TIMER_START_REL_HOUR",
      "name": "Start Timer (Hours)",
      "type": "integer",
      "create": {"when": "profileHasAny", "keys": ["timer.relativeHourToStart"]},
      "read": {"sources": ["timer.relativeHourToStart"]},
      "write": {"attribute": {"resource": "timer", "property": "relativeHourToStart"}},
      "action": {"enableWhen": "profile-writable-any",
                 "writeableKeys": ["timer.relativeHourToStart"]},
      "presentation": {"kind": "slider", "min": 0, "max": 24, "step": 1}
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from thinqmap.engine.probe import WRAPPER_PREFIXES

logger = logging.getLogger(__name__)

TYPES = ("boolean", "integer", "float", "string")

_TYPE_ALIASES = {
    "bool": "boolean",
    "boolean": "boolean",
    "int": "integer",
    "integer": "integer",
    "range": "integer",
    "float": "float",
    "double": "float",
    "number": "float",
    "str": "string",
    "string": "string",
    "enum": "string",
}

# Create rules
ALWAYS = "always"
PROFILE_HAS_ALL = "profile-has-all"
PROFILE_HAS_ANY = "profile-has-any"
STATUS_HAS_ANY = "status-has-any"
NEVER = "never"

# Action rules
PROFILE_WRITABLE_ANY = "profile-writable-any"

_CREATE_ALIASES = {
    "always": ALWAYS,
    "profilehasall": PROFILE_HAS_ALL,
    "profilehasany": PROFILE_HAS_ANY,
    "statushasany": STATUS_HAS_ANY,
    "never": NEVER,
}

_ENABLE_ALIASES = {
    "always": ALWAYS,
    "never": NEVER,
    "profilewritableany": PROFILE_WRITABLE_ANY,
    "profilewriteableany": PROFILE_WRITABLE_ANY,
}

_TRUE_TOKENS = {"true", "1", "on", "yes", "set", "start", "power_on"}
_FALSE_TOKENS = {"false", "0", "off", "no", "unset", "stop", "power_off", ""}


def _normalize_key(text: Any) -> str:
    return str(text or "").lower().replace("-", "").replace("_", "")


def normalize_type(value: Any) -> str:
    return _TYPE_ALIASES.get(str(value or "string").lower(), "string")


def coerce_value(type_: str, value: Any) -> Any:
    """Convert ``value`` to the Python type matching a descriptor type.

    Raises:
        ValueError: If the value cannot be represented in that type
    """
    if type_ == "boolean":
        if isinstance(value, str):
            token = value.strip().lower()
            if token in _TRUE_TOKENS:
                return True
            if token in _FALSE_TOKENS:
                return False
            raise ValueError(f"Not a boolean: {value!r}")
        return bool(value)
    if type_ == "integer":
        if isinstance(value, bool):
            return int(value)
        try:
            return int(float(value))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Not an integer: {value!r}") from e
    if type_ == "float":
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Not a number: {value!r}") from e
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonical_token(value: Any) -> str:
    """String form used as a map key: ``True`` -> ``"true"``, ``2.0`` -> ``"2"``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return ""
    return str(value)


def _str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v) for v in value if v is not None and str(v) != "")


def _dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _paths(value: Any) -> tuple[str, ...]:
    """Accept ``["a.b", ...]`` or ``[{"path": "a.b"}, ...]``."""
    if not isinstance(value, list):
        return ()
    out = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("path")
        if item:
            out.append(str(item))
    return tuple(out)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class CreateRule:
    when: str = ALWAYS
    keys: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "CreateRule":
        data = _dict(data)
        when = _CREATE_ALIASES.get(_normalize_key(data.get("when", ALWAYS)), NEVER)
        return cls(when=when, keys=_str_tuple(data.get("keys")))


@dataclass(frozen=True)
class ArraySelector:
    """Select an array element under ``container`` whose fields equal ``where``."""

    container: str
    path: str
    where: dict[str, Any] = field(default_factory=dict)
    value_map: dict[str, Any] = field(default_factory=dict)
    true_values: tuple[str, ...] = ()
    false_values: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ArraySelector"]:
        data = _dict(data)
        if not data.get("container") or not data.get("path"):
            return None
        return cls(
            container=str(data["container"]),
            path=str(data["path"]),
            where=_dict(data.get("where")),
            value_map=_dict(data.get("map")),
            true_values=_str_tuple(data.get("string_true")),
            false_values=_str_tuple(data.get("string_false")),
        )


@dataclass(frozen=True)
class CompositeRead:
    combine: str
    parts: tuple[str, ...]

    @classmethod
    def from_dict(cls, data: Any) -> Optional["CompositeRead"]:
        data = _dict(data)
        parts = _paths(data.get("parts"))
        if not data.get("combine") or len(parts) < 2:
            return None
        return cls(combine=str(data["combine"]).lower(), parts=parts)


@dataclass(frozen=True)
class ReadSpec:
    sources: tuple[str, ...] = ()
    value_map: dict[str, Any] = field(default_factory=dict)
    map_case_insensitive: Optional[bool] = None
    array: Optional[ArraySelector] = None
    composite: Optional[CompositeRead] = None
    true_values: tuple[str, ...] = ()
    false_values: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "ReadSpec":
        data = _dict(data)
        ci = data.get("mapCaseInsensitive")
        return cls(
            sources=_str_tuple(data.get("sources")),
            value_map=_dict(data.get("map")),
            map_case_insensitive=bool(ci) if ci is not None else None,
            array=ArraySelector.from_dict(data.get("array")),
            composite=CompositeRead.from_dict(data.get("composite")),
            true_values=_str_tuple(data.get("string_true")),
            false_values=_str_tuple(data.get("string_false")),
        )

    def paths(self) -> list[str]:
        """Every status path this spec may read."""
        out = list(self.sources)
        if self.composite:
            out.extend(self.composite.parts)
        return out


# ---------------------------------------------------------------------------
# Write strategies


@dataclass(frozen=True)
class Clamp:
    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Clamp"]:
        data = _dict(data)
        low, high = _number(data.get("min")), _number(data.get("max"))
        if low is None and high is None:
            return None
        return cls(min=low, max=high)

    def apply(self, value: Any) -> Any:
        number = _number(value)
        if number is None:
            return value
        if self.min is not None:
            number = max(self.min, number)
        if self.max is not None:
            number = min(self.max, number)
        return number


@dataclass(frozen=True)
class AttributeWrite:
    """Write the value to ``{resource: {property: value}}``."""

    resource: str
    property: str
    location: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)
    clamp_from_profile: bool = False
    value_template: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["AttributeWrite"]:
        data = _dict(data)
        if not data.get("resource") or not data.get("property"):
            return None
        return cls(
            resource=str(data["resource"]),
            property=str(data["property"]),
            location=data.get("location") or None,
            extra=_dict(data.get("extra")),
            clamp_from_profile=bool(data.get("clampFromProfile", False)),
            value_template=data.get("valueTemplate") or None,
        )

    @property
    def path(self) -> str:
        return f"{self.resource}.{self.property}"


@dataclass(frozen=True)
class EnumMapWrite:
    """Canonical value token -> ``{dot.path: constant}`` sub-payload."""

    mapping: dict[str, dict[str, Any]]

    @classmethod
    def from_dict(cls, data: Any) -> Optional["EnumMapWrite"]:
        data = _dict(data)
        mapping = {str(k): v for k, v in data.items() if isinstance(v, dict)}
        return cls(mapping=mapping) if mapping else None


@dataclass(frozen=True)
class CompositeWrite:
    decompose: str
    targets: tuple[str, ...]

    @classmethod
    def from_dict(cls, data: Any) -> Optional["CompositeWrite"]:
        data = _dict(data)
        targets = _paths(data.get("targets"))
        if not data.get("decompose") or len(targets) < 2:
            return None
        return cls(decompose=str(data["decompose"]).lower(), targets=targets)


@dataclass(frozen=True)
class ArrayTemplateWrite:
    container: str
    set: dict[str, Any]
    where: dict[str, Any] = field(default_factory=dict)
    path: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ArrayTemplateWrite"]:
        data = _dict(data)
        if not data.get("container") or not _dict(data.get("set")):
            return None
        return cls(
            container=str(data["container"]),
            set=_dict(data.get("set")),
            where=_dict(data.get("where")),
            path=str(data.get("path") or ""),
        )


@dataclass(frozen=True)
class TemplateWrite:
    template: dict[str, Any]

    @classmethod
    def from_dict(cls, data: Any) -> Optional["TemplateWrite"]:
        return cls(template=dict(data)) if isinstance(data, dict) and data else None


@dataclass(frozen=True)
class MultiAttributeItem:
    resource: str
    property: str
    location: Optional[str] = None
    has_value: bool = False
    value: Any = None
    clamp: Optional[Clamp] = None
    value_template: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["MultiAttributeItem"]:
        data = _dict(data)
        if not data.get("resource") or not data.get("property"):
            return None
        return cls(
            resource=str(data["resource"]),
            property=str(data["property"]),
            location=data.get("location") or None,
            has_value="value" in data,
            value=data.get("value"),
            clamp=Clamp.from_dict(data.get("clamp")),
            value_template=data.get("valueTemplate") or None,
        )

    @property
    def path(self) -> str:
        return f"{self.resource}.{self.property}"


@dataclass(frozen=True)
class MultiAttributeWrite:
    items: tuple[MultiAttributeItem, ...]

    @classmethod
    def from_dict(cls, data: Any) -> Optional["MultiAttributeWrite"]:
        raw = data.get("items") if isinstance(data, dict) else data
        if not isinstance(raw, list):
            return None
        items = tuple(i for i in (MultiAttributeItem.from_dict(r) for r in raw) if i)
        return cls(items=items) if items else None


@dataclass(frozen=True)
class FirstOfOption:
    """One alternative of a first-of chain plus its optional gate."""

    strategy: "WriteStrategy"
    writeable_any: tuple[str, ...] = ()
    has_any: tuple[str, ...] = ()


@dataclass(frozen=True)
class FirstOfWrite:
    options: tuple[FirstOfOption, ...]

    @classmethod
    def from_list(cls, data: Any) -> Optional["FirstOfWrite"]:
        if not isinstance(data, list):
            return None
        options = []
        for raw in data:
            if not isinstance(raw, dict):
                continue
            # firstOf does not nest; only the leaf strategies are honored
            strategies = [s for s in parse_strategies(raw) if not isinstance(s, FirstOfWrite)]
            if not strategies:
                continue
            has_any = raw.get("profileHasAny", raw.get("whenProfileHasAny"))
            options.append(
                FirstOfOption(
                    strategy=strategies[0],
                    writeable_any=_str_tuple(raw.get("profileWriteableAny")),
                    has_any=_str_tuple(has_any),
                )
            )
        return cls(options=tuple(options)) if options else None


WriteStrategy = Union[
    CompositeWrite,
    EnumMapWrite,
    ArrayTemplateWrite,
    TemplateWrite,
    AttributeWrite,
    MultiAttributeWrite,
    FirstOfWrite,
]

# Fixed evaluation order: the first applicable strategy wins
_STRATEGY_KEYS = (
    ("composite", CompositeWrite.from_dict),
    ("enumMap", EnumMapWrite.from_dict),
    ("arrayTemplate", ArrayTemplateWrite.from_dict),
    ("template", TemplateWrite.from_dict),
    ("attribute", AttributeWrite.from_dict),
    ("multiAttribute", MultiAttributeWrite.from_dict),
    ("firstOf", FirstOfWrite.from_list),
)


def parse_strategies(data: dict[str, Any]) -> list[WriteStrategy]:
    out = []
    for key, parse in _STRATEGY_KEYS:
        if key in data:
            strategy = parse(data[key])
            if strategy is None:
                logger.warning(f"Ignoring malformed {key!r} write strategy")
            else:
                out.append(strategy)
    return out


@dataclass(frozen=True)
class WriteSpec:
    strategies: tuple[WriteStrategy, ...] = ()
    clamp: Optional[Clamp] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["WriteSpec"]:
        data = _dict(data)
        if not data:
            return None
        return cls(strategies=tuple(parse_strategies(data)), clamp=Clamp.from_dict(data.get("clamp")))

    def attribute_paths(self) -> list[tuple[str, Optional[str]]]:
        """``(resource.property, location)`` of every attribute-style target."""
        out: list[tuple[str, Optional[str]]] = []
        for strategy in self._walk():
            if isinstance(strategy, AttributeWrite):
                out.append((strategy.path, strategy.location))
            elif isinstance(strategy, MultiAttributeWrite):
                out.extend((i.path, i.location) for i in strategy.items)
        return out

    def _walk(self) -> Iterable[WriteStrategy]:
        for strategy in self.strategies:
            yield strategy
            if isinstance(strategy, FirstOfWrite):
                for option in strategy.options:
                    yield option.strategy


@dataclass(frozen=True)
class ActionSpec:
    enable_when: str = NEVER
    writeable_keys: tuple[str, ...] = ()
    reassert_on: frozenset[str] = frozenset()

    @classmethod
    def from_dict(cls, data: Any) -> "ActionSpec":
        data = _dict(data)
        enable_when = _ENABLE_ALIASES.get(_normalize_key(data.get("enableWhen", NEVER)), NEVER)
        return cls(
            enable_when=enable_when,
            writeable_keys=_str_tuple(data.get("writeableKeys")),
            reassert_on=frozenset(s.lower() for s in _str_tuple(data.get("reassertOn"))),
        )


@dataclass(frozen=True)
class Presentation:
    kind: str = "value"
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    suffix: str = ""
    digits: Optional[int] = None
    options: tuple[dict[str, Any], ...] = ()
    range_from_profile: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Presentation"]:
        if not isinstance(data, dict):
            return None
        rng = _dict(data.get("range"))
        digits = data.get("digits")
        options = tuple(o for o in data.get("options") or [] if isinstance(o, dict))
        from_profile = {
            k: _str_tuple(v) for k, v in _dict(data.get("rangeFromProfile")).items() if k in ("min", "max", "step")
        }
        return cls(
            kind=str(data.get("kind", "value")).lower(),
            min=_number(rng.get("min", data.get("min"))),
            max=_number(rng.get("max", data.get("max"))),
            step=_number(rng.get("step", data.get("step"))),
            suffix=str(data.get("suffix") or ""),
            digits=int(digits) if isinstance(digits, (int, float)) and not isinstance(digits, bool) else None,
            options=options,
            range_from_profile=from_profile,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind}
        if self.kind == "slider" or any(v is not None for v in (self.min, self.max, self.step)):
            out["range"] = {"min": self.min, "max": self.max, "step": self.step}
        if self.suffix:
            out["suffix"] = self.suffix
        if self.digits is not None:
            out["digits"] = self.digits
        if self.options:
            out["options"] = [dict(o) for o in self.options]
        return out


@dataclass(frozen=True)
class Descriptor:
    ident: str
    name: str = ""
    type: str = "string"
    location: Optional[str] = None
    create: CreateRule = field(default_factory=CreateRule)
    read: ReadSpec = field(default_factory=ReadSpec)
    write: Optional[WriteSpec] = None
    action: ActionSpec = field(default_factory=ActionSpec)
    presentation: Optional[Presentation] = None
    hidden: bool = False
    origin: str = "manual"

    @classmethod
    def from_dict(cls, data: dict[str, Any], origin: str = "manual") -> Optional["Descriptor"]:
        """Parse one descriptor object; returns None when ``ident`` is missing."""
        ident = str(data.get("ident") or "").strip()
        if not ident:
            return None
        return cls(
            ident=ident,
            name=str(data.get("name") or ident),
            type=normalize_type(data.get("type")),
            location=data.get("location") or None,
            create=CreateRule.from_dict(data.get("create")),
            read=ReadSpec.from_dict(data.get("read")),
            write=WriteSpec.from_dict(data.get("write")),
            action=ActionSpec.from_dict(data.get("action")),
            presentation=Presentation.from_dict(data.get("presentation")),
            hidden=bool(_dict(data.get("visibility")).get("hidden", False)),
            origin=origin,
        )

    def coerce(self, value: Any) -> Any:
        return coerce_value(self.type, value)


# ---------------------------------------------------------------------------
# Files and store


def parse_descriptor_document(data: Any, source: str = "<memory>") -> list[Descriptor]:
    """Parse a descriptor document (list or ``{"capabilities": [...]}``)."""
    if isinstance(data, dict):
        data = data.get("capabilities")
    if not isinstance(data, list):
        logger.warning(f"Descriptor file {source} has no capability list")
        return []

    out = []
    for raw in data:
        if not isinstance(raw, dict):
            continue
        descriptor = Descriptor.from_dict(raw)
        if descriptor is None:
            logger.debug(f"Skipping descriptor without ident in {source}")
            continue
        out.append(descriptor)
    return out


def load_descriptor_file(path: Path) -> list[Descriptor]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read descriptor file {path}: {e}")
        return []
    return parse_descriptor_document(data, source=str(path))


def load_descriptor_files(directory: Path, files: Iterable[str]) -> list[Descriptor]:
    """Load several descriptor files; later files override earlier ones per ident."""
    merged: dict[str, Descriptor] = {}
    for name in files:
        for descriptor in load_descriptor_file(directory / name):
            merged.pop(descriptor.ident, None)
            merged[descriptor.ident] = descriptor
    logger.info(f"Loaded {len(merged)} curated descriptors from {list(files)}")
    return list(merged.values())


def profile_sections(flat_profile: dict[str, Any]) -> set[str]:
    """Top-level resource names of a flattened profile, ignoring envelopes."""
    wrappers = {p.strip(".") for p in WRAPPER_PREFIXES if p}
    wrapper_tokens = {t for w in wrappers for t in w.split(".")}
    out = set()
    for key in flat_profile:
        for part in key.split("."):
            if part.isdigit() or part in wrapper_tokens:
                continue
            out.add(part)
            break
    return out


SYNTHETIC_DESCRIPTORS: tuple[tuple[str, dict[str, Any]], ...] = (
    (
        "error",
        {
            "ident": "LAST_ERROR",
            "name": "Last Error",
            "type": "string",
            "read": {"sources": ["error.code", "error", "error.0", "errorCode"]},
        },
    ),
    (
        "notification",
        {
            "ident": "LAST_NOTIFICATION",
            "name": "Last Push Message",
            "type": "string",
            "read": {
                "sources": ["pushCode", "notification.pushCode", "notification.push.0", "notification.push"]
            },
        },
    ),
)


def synthetic_descriptors(flat_profile: dict[str, Any]) -> list[Descriptor]:
    """Always-present trackers, added when the profile declares their section."""
    sections = profile_sections(flat_profile)
    out = []
    for section, raw in SYNTHETIC_DESCRIPTORS:
        if section in sections:
            out.append(Descriptor.from_dict(raw, origin="synthetic"))
    return out


class DescriptorStore:
    """Ordered set of descriptors for one (device type, profile) pair.

    Curated descriptors come first and always win. Auto-discovered
    descriptors fill identifiers that are still free, and synthetic
    descriptors are appended last.
    """

    def __init__(
        self,
        manual: Iterable[Descriptor] = (),
        auto: Iterable[Descriptor] = (),
        synthetic: Iterable[Descriptor] = (),
    ):
        self._descriptors: dict[str, Descriptor] = {}
        for descriptor in manual:
            self._descriptors.pop(descriptor.ident, None)
            self._descriptors[descriptor.ident] = descriptor
        for descriptor in [*auto, *synthetic]:
            if descriptor.ident not in self._descriptors:
                self._descriptors[descriptor.ident] = descriptor

    def get(self, ident: str) -> Optional[Descriptor]:
        return self._descriptors.get(ident)

    def all(self) -> list[Descriptor]:
        return list(self._descriptors.values())

    def idents(self) -> list[str]:
        return list(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, ident: str) -> bool:
        return ident in self._descriptors

    def __iter__(self):
        return iter(self._descriptors.values())
