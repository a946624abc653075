"""Step dependency graph for live pricing.

Static registry of which wizard steps influence which computed outputs.
Built once per engine and never mutated.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional, Set, Tuple

import structlog

logger = structlog.get_logger()

PRICING_OUTPUT = "pricing"

NO_VALUE = object()


@dataclass(frozen=True)
class DependencyEdge:
    """A field of a step and the outputs it affects."""

    step_id: str
    field_path: str
    affects: Tuple[str, ...]
    validator: Optional[Callable[[object], bool]] = None

    def matches_field(self, changed_field: str) -> bool:
        return (
            self.field_path == changed_field
            or self.field_path.startswith(changed_field + ".")
            or changed_field.startswith(self.field_path + ".")
        )

    def accepts(self, value: object) -> bool:
        """Whether a new value for this field is usable for pricing."""
        return self.validator is None or bool(self.validator(value))


def _positive_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _non_empty(value: object) -> bool:
    return bool(value)


DEFAULT_DEPENDENCIES: Dict[str, Tuple[Tuple[str, Tuple[str, ...], Callable[[object], bool]], ...]] = {
    "project-setup": (
        ("buildingType", ("pricing",), _non_empty),
    ),
    "scope-details": (
        ("selectedServices", ("takeoff", "duration", "expenses", "pricing"), _non_empty),
    ),
    "area-of-work": (
        ("measurements.totalArea", ("takeoff", "duration", "expenses", "pricing"), _positive_number),
        ("buildingDetails.height", ("duration", "expenses", "pricing"), _positive_number),
    ),
    "takeoff": (
        ("measurements", ("duration", "expenses", "pricing"), _non_empty),
    ),
    "duration": (
        ("timeline.estimatedHours", ("expenses", "pricing"), _positive_number),
    ),
    "expenses": (
        ("breakdown", ("pricing",), _non_empty),
    ),
    "pricing": (
        ("manualOverrides", (), _non_empty),
    ),
}


def normalize_step_id(step_id: str) -> str:
    """Normalize ``areaOfWork`` / ``area_of_work`` / ``Area-Of-Work`` to ``area-of-work``."""
    kebab = re.sub(r"(?<=[a-z0-9])([A-Z])", r"-\1", step_id.strip())
    return kebab.replace("_", "-").replace(" ", "-").lower()


class DependencyGraph:
    """Answers which outputs a change to a wizard step affects."""

    def __init__(self, dependencies: Optional[Mapping[str, Iterable[tuple]]] = None):
        table = dependencies if dependencies is not None else DEFAULT_DEPENDENCIES
        edges: Dict[str, Tuple[DependencyEdge, ...]] = {}
        for step_id, entries in table.items():
            key = normalize_step_id(step_id)
            edges[key] = tuple(
                DependencyEdge(
                    step_id=key,
                    field_path=entry[0],
                    affects=tuple(normalize_step_id(a) for a in entry[1]),
                    validator=entry[2] if len(entry) > 2 else None,
                )
                for entry in entries
            )
        self._edges: Mapping[str, Tuple[DependencyEdge, ...]] = MappingProxyType(edges)

    @property
    def steps(self) -> Tuple[str, ...]:
        return tuple(self._edges)

    def __contains__(self, step_id: object) -> bool:
        return isinstance(step_id, str) and normalize_step_id(step_id) in self._edges

    def edges_from(self, step_id: str) -> Tuple[DependencyEdge, ...]:
        """Edges registered for a step; empty for unknown steps."""
        return self._edges.get(normalize_step_id(step_id), ())

    def downstream(self, step_id: str) -> Set[str]:
        """All outputs reachable from a step, transitively."""
        seen: Set[str] = set()
        stack = [normalize_step_id(step_id)]
        while stack:
            current = stack.pop()
            for edge in self._edges.get(current, ()):
                for target in edge.affects:
                    if target not in seen:
                        seen.add(target)
                        stack.append(target)
        return seen

    def affects(self, step_id: Optional[str], output: str = PRICING_OUTPUT) -> Optional[bool]:
        """Whether a change to ``step_id`` can change ``output``.

        Returns:
            True/False for registered steps, None when the step is unknown
            (callers must then assume it does).
        """
        if not step_id or step_id not in self:
            return None
        key = normalize_step_id(step_id)
        target = normalize_step_id(output)
        return key == target or target in self.downstream(key)

    def does_step_affect_pricing(
        self,
        step_id: str,
        changed_field: Optional[str] = None,
        value: object = NO_VALUE
    ) -> bool:
        """Whether a step (optionally a specific field of it) is wired to pricing.

        Field paths match by prefix in either direction, so ``"measurements"``
        matches ``"measurements.totalArea"`` and vice versa. When ``value`` is
        given, only edges whose validator accepts the new value count, so a
        height of 0 or an empty service list does not trigger a recalculation.
        """
        edges = self.edges_from(step_id)
        if not edges:
            return False
        if normalize_step_id(step_id) == PRICING_OUTPUT:
            return True
        relevant = [e for e in edges if changed_field is None or e.matches_field(changed_field)]
        if value is not NO_VALUE:
            relevant = [e for e in relevant if e.accepts(value)]
        return any(
            PRICING_OUTPUT in e.affects
            or any(PRICING_OUTPUT in self.downstream(target) for target in e.affects)
            for e in relevant
        )
