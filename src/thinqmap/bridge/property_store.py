"""In-memory bound-property store that reconciles property plans."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from thinqmap.engine.descriptors import coerce_value
from thinqmap.engine.planner import PlanEntry

logger = logging.getLogger(__name__)

# Hour/minute helpers driven through their combined timer property
DEFAULT_HIDDEN_IDENTS = frozenset(
    {
        "TIMER_START_REL_HOUR",
        "TIMER_START_REL_MIN",
        "TIMER_STOP_REL_HOUR",
        "TIMER_STOP_REL_MIN",
        "SLEEP_STOP_REL_HOUR",
        "SLEEP_STOP_REL_MIN",
        "TIMER_START_ABS_HOUR",
        "TIMER_START_ABS_MIN",
        "TIMER_STOP_ABS_HOUR",
        "TIMER_STOP_ABS_MIN",
    }
)


@dataclass
class BoundProperty:
    """A property exposed to the host for one device."""

    ident: str
    type: str
    name: str
    hidden: bool = False
    presentation: Optional[dict[str, Any]] = None
    action_enabled: bool = False
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ident": self.ident,
            "type": self.type,
            "name": self.name,
            "hidden": self.hidden,
            "presentation": self.presentation,
            "actionEnabled": self.action_enabled,
            "value": self.value,
        }


@runtime_checkable
class MaintainProperty(Protocol):
    """Host-side property store a device binds its plan into."""

    def maintain(self, entry: PlanEntry) -> BoundProperty: ...

    def reconcile(self, plan: Iterable[PlanEntry]) -> list[BoundProperty]: ...

    def enable_action(self, ident: str) -> bool: ...

    def set_value(self, ident: str, value: Any) -> bool: ...

    def get_value(self, ident: str) -> Optional[Any]: ...

    def get(self, ident: str) -> Optional[BoundProperty]: ...

    def get_all(self) -> dict[str, BoundProperty]: ...

    def __contains__(self, ident: str) -> bool: ...


class PropertyStore:
    """Bound properties of one device, keyed by ident.

    Reconciliation is idempotent and never deletes: a property whose plan
    entry stops asking for creation keeps its last value.
    """

    def __init__(self, hidden_idents: Iterable[str] = DEFAULT_HIDDEN_IDENTS):
        self._properties: dict[str, BoundProperty] = {}
        self._hidden_idents = frozenset(hidden_idents)

    def register(self, prop: BoundProperty) -> None:
        """Register a property.

        Raises:
            ValueError: If a property with the same ident is already registered
        """
        if prop.ident in self._properties:
            raise ValueError(f"Property already registered: {prop.ident}")
        self._properties[prop.ident] = prop

    def maintain(self, entry: PlanEntry) -> BoundProperty:
        """Create the property for ``entry`` or refresh its metadata."""
        hidden = entry.hidden or entry.ident in self._hidden_idents
        prop = self._properties.get(entry.ident)
        if prop is None:
            prop = BoundProperty(
                ident=entry.ident,
                type=entry.type,
                name=entry.name,
                hidden=hidden,
                presentation=entry.presentation,
            )
            self._properties[entry.ident] = prop
            logger.debug(f"Created property {entry.ident} ({entry.type})")
        else:
            prop.name = entry.name
            prop.presentation = entry.presentation
            prop.hidden = prop.hidden or hidden
        return prop

    def reconcile(self, plan: Iterable[PlanEntry]) -> list[BoundProperty]:
        """Apply a property plan.

        Args:
            plan: Plan entries from the capability engine

        Returns:
            The bound properties touched by this plan, in plan order
        """
        touched = []
        for entry in plan:
            if not entry.should_create and entry.ident not in self._properties:
                continue
            prop = self.maintain(entry)
            if entry.enable_action:
                prop.action_enabled = True
            if entry.initial_value is not None:
                self.set_value(entry.ident, entry.initial_value)
            touched.append(prop)
        logger.info(f"Reconciled {len(touched)} properties")
        return touched

    def enable_action(self, ident: str) -> bool:
        prop = self._properties.get(ident)
        if prop is None:
            return False
        prop.action_enabled = True
        return True

    def set_value(self, ident: str, value: Any) -> bool:
        """Store a value coerced to the property's type.

        Returns:
            False if the property is unknown or the value does not fit its type
        """
        prop = self._properties.get(ident)
        if prop is None:
            return False
        try:
            prop.value = coerce_value(prop.type, value)
        except ValueError as e:
            logger.warning(f"Rejected value for {ident}: {e}")
            return False
        return True

    def get_value(self, ident: str) -> Optional[Any]:
        prop = self._properties.get(ident)
        return prop.value if prop is not None else None

    def get(self, ident: str) -> Optional[BoundProperty]:
        return self._properties.get(ident)

    def get_all(self) -> dict[str, BoundProperty]:
        return dict(self._properties)

    def values(self) -> dict[str, Any]:
        return {ident: p.value for ident, p in self._properties.items() if p.value is not None}

    def __len__(self) -> int:
        return len(self._properties)

    def __contains__(self, ident: str) -> bool:
        return ident in self._properties
