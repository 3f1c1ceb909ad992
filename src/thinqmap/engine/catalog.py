"""Catalog of descriptor-file rules and the device-type resolver."""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

# Prefixes the cloud puts in front of the appliance kind ("DEVICE_WASHER")
VENDOR_PREFIXES = ("device_", "thinq_", "lg_")

_SEPARATORS = ("_", "-", " ")


@dataclass(frozen=True)
class MatchCondition:
    """A ``match`` or ``exclude`` block of a catalog rule.

    ``any`` needles are OR-ed substrings, ``all`` needles are AND-ed
    substrings and ``regex`` patterns are OR-ed, case-insensitive.
    Every populated block must pass for the condition to match.
    """

    any: tuple[str, ...] = ()
    all: tuple[str, ...] = ()
    regex: tuple[str, ...] = ()
    # ``regex`` compiled once; ``broken`` is set when a pattern does not compile
    patterns: tuple[re.Pattern, ...] = field(default=(), compare=False, repr=False)
    broken: bool = field(default=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "MatchCondition":
        if not isinstance(data, dict):
            return cls()
        any_ = _str_tuple(data.get("any"))
        all_ = _str_tuple(data.get("all"))
        regex = _str_tuple(data.get("regex"), lower=False)
        try:
            patterns = tuple(re.compile(p, re.IGNORECASE) for p in regex if p)
        except re.error as e:
            logger.warning(f"Catalog condition {list(regex)} never matches: bad pattern ({e})")
            return cls(any=any_, all=all_, regex=regex, broken=True)
        return cls(any=any_, all=all_, regex=regex, patterns=patterns)

    def is_empty(self) -> bool:
        return not (self.any or self.all or self.regex)

    def matches(self, haystacks: Sequence[str]) -> bool:
        """Test the condition against lower-cased haystacks."""
        if self.broken:
            return False

        if self.any:
            needles = [n for n in self.any if n]
            if not any(n in h for n in needles for h in haystacks):
                return False

        for needle in self.all:
            if needle and not any(needle in h for h in haystacks):
                return False

        if self.regex:
            if not any(p.search(h) for p in self.patterns for h in haystacks):
                return False

        return True

    def names_exactly(self, candidate: str) -> bool:
        """True when a needle or pattern covers the whole candidate string."""
        if candidate in self.any or candidate in self.all:
            return True
        return any(p.fullmatch(candidate) for p in self.patterns)


@dataclass(frozen=True)
class CatalogRule:
    """One catalog rule: a condition plus the descriptor files it selects."""

    match: MatchCondition
    exclude: MatchCondition = field(default_factory=MatchCondition)
    files: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogRule":
        return cls(
            match=MatchCondition.from_dict(data.get("match")),
            exclude=MatchCondition.from_dict(data.get("exclude")),
            files=_str_tuple(data.get("files"), lower=False),
        )

    def matches(self, haystacks: Sequence[str]) -> bool:
        """Evaluate match and exclude; a broken regex makes the rule non-matching."""
        if self.match.is_empty() or self.match.broken or self.exclude.broken:
            return False
        if not self.match.matches(haystacks):
            return False
        if not self.exclude.is_empty() and self.exclude.matches(haystacks):
            return False
        return True


@dataclass(frozen=True)
class Catalog:
    """Immutable set of catalog rules plus the fallback file list."""

    rules: tuple[CatalogRule, ...] = ()
    fallback: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "Catalog":
        return cls()

    @classmethod
    def from_dict(cls, data: Any) -> "Catalog":
        if not isinstance(data, dict):
            return cls.empty()
        raw_rules = data.get("rules")
        rules = tuple(
            CatalogRule.from_dict(r)
            for r in (raw_rules if isinstance(raw_rules, list) else [])
            if isinstance(r, dict)
        )
        return cls(rules=rules, fallback=_str_tuple(data.get("fallback"), lower=False))

    def resolve(self, device_type: str, profile: Any = None) -> list[str]:
        """Select descriptor files for a device.

        Resolution order:
        1. Strict pass on the device type alone. Rules naming a candidate
           exactly win over rules that only match a substring of it.
        2. Fallback pass on the device type plus the serialized profile.
        3. The catalog's declared fallback list.

        Args:
            device_type: Device type string reported by the cloud
            profile: Device profile, only used by the fallback pass

        Returns:
            Ordered, de-duplicated list of descriptor file names
        """
        candidates = device_type_candidates(device_type)

        exact: list[str] = []
        loose: list[str] = []
        for rule in self.rules:
            hits = [c for c in candidates if rule.matches([c])]
            if any(rule.match.names_exactly(c) for c in hits):
                exact.extend(rule.files)
            elif hits:
                loose.extend(rule.files)

        if exact:
            logger.debug(f"Catalog strict match for {device_type!r}: {exact}")
            return _unique(exact)
        if loose:
            logger.debug(f"Catalog device-type match for {device_type!r}: {loose}")
            return _unique(loose)

        profile_text = _profile_text(profile)
        matched: list[str] = []
        for rule in self.rules:
            for candidate in candidates or [""]:
                haystacks = [h for h in (candidate, profile_text) if h]
                if haystacks and rule.matches(haystacks):
                    matched.extend(rule.files)
                    break

        if matched:
            logger.debug(f"Catalog profile match for {device_type!r}: {matched}")
            return _unique(matched)

        logger.debug(f"No catalog rule matched {device_type!r}, using fallback")
        return list(self.fallback)


def device_type_candidates(device_type: Optional[str]) -> list[str]:
    """Build the normalized candidate strings for a device type.

    ``"DEVICE_AIR_CONDITIONER"`` yields ``device_air_conditioner``,
    ``air_conditioner``, ``air conditioner``, ``air-conditioner`` and
    ``airconditioner`` (plus the prefixed variants), in that order.
    """
    raw = (device_type or "").strip().lower()
    if not raw:
        return []

    stripped = raw
    changed = True
    while changed:
        changed = False
        for prefix in VENDOR_PREFIXES:
            if stripped.startswith(prefix) and len(stripped) > len(prefix):
                stripped = stripped[len(prefix):]
                changed = True

    out: list[str] = []
    for base in (raw, stripped):
        out.append(base)
    for base in (stripped, raw):
        tokens = re.split(r"[_\- ]+", base)
        for sep in _SEPARATORS:
            out.append(sep.join(tokens))
        out.append("".join(tokens))
    return _unique([c for c in out if c])


def load_catalog(path: Path) -> Catalog:
    """Load a catalog file, degrading to an empty catalog on any failure."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning(f"Catalog not found at {path}, using empty catalog")
        return Catalog.empty()
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read catalog {path}: {e}")
        return Catalog.empty()

    catalog = Catalog.from_dict(data)
    logger.info(f"Loaded catalog with {len(catalog.rules)} rules from {path}")
    return catalog


def _profile_text(profile: Any) -> str:
    if not profile:
        return ""
    try:
        return json.dumps(profile, ensure_ascii=False).lower()
    except (TypeError, ValueError):
        return ""


def _str_tuple(value: Any, lower: bool = True) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return ()
    items = (str(v) for v in value if v is not None)
    return tuple(v.lower() for v in items) if lower else tuple(items)


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))
