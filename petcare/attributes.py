"""Bounded care gauges and the store that owns the current snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from petcare.constants import GAUGE_MAX, GAUGE_MIN, SICK_GAUGE_COUNT, SICK_THRESHOLD
from petcare.errors import InvariantViolation

LOGGER = logging.getLogger(__name__)

GAUGES: Tuple[str, ...] = ("satiety", "energy", "hygiene", "mood", "boredom")


def clamp_gauge(value: float) -> float:
    return max(GAUGE_MIN, min(GAUGE_MAX, float(value)))


@dataclass(frozen=True)
class CareAttributes:
    """Immutable snapshot of the five care gauges.

    ``boredom`` is inverted: it rises toward 100 as the pet gets bored.
    ``is_sick`` is derived on read and never stored: two or more gauges
    below the sick threshold, with boredom measured as ``100 - boredom``.
    """

    satiety: float = 78.0
    energy: float = 80.0
    hygiene: float = 76.0
    mood: float = 82.0
    boredom: float = 25.0
    last_action: Optional[str] = None

    def wellness(self, name: str) -> float:
        """Gauge on a higher-is-better scale (boredom is flipped)."""
        value = float(getattr(self, name))
        return GAUGE_MAX - value if name == "boredom" else value

    @property
    def is_sick(self) -> bool:
        low = sum(1 for name in GAUGES if self.wellness(name) < SICK_THRESHOLD)
        return low >= SICK_GAUGE_COUNT

    def gauge(self, name: str) -> float:
        """Return a gauge (or ``is_sick`` coerced to 1/0) as a number."""
        if name == "is_sick":
            return 1.0 if self.is_sick else 0.0
        if name not in GAUGES:
            raise KeyError(name)
        return float(getattr(self, name))

    def out_of_range(self) -> Dict[str, float]:
        return {
            name: getattr(self, name)
            for name in GAUGES
            if not GAUGE_MIN <= getattr(self, name) <= GAUGE_MAX
        }

    def clamped(self) -> "CareAttributes":
        return replace(self, **{name: clamp_gauge(getattr(self, name)) for name in GAUGES})

    def with_delta(
        self,
        deltas: Mapping[str, float],
        last_action: Optional[str] = None,
    ) -> "CareAttributes":
        """Return a copy with ``deltas`` added, each gauge clamped to [0, 100].

        Args:
            deltas: Gauge name to signed change. Unknown names are rejected.
            last_action: Optional interaction kind to stamp on the snapshot.
        """
        unknown = set(deltas) - set(GAUGES)
        if unknown:
            raise KeyError(f"Unknown gauge(s): {', '.join(sorted(unknown))}")
        changes: Dict[str, Any] = {
            name: clamp_gauge(getattr(self, name) + float(delta))
            for name, delta in deltas.items()
        }
        if last_action is not None:
            changes["last_action"] = last_action
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Plain record for persistence collaborators (``is_sick`` is informational)."""
        record: Dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        record["is_sick"] = self.is_sick
        return record

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CareAttributes":
        defaults = cls()
        values: Dict[str, Any] = {
            name: clamp_gauge(data.get(name, getattr(defaults, name))) for name in GAUGES
        }
        values["last_action"] = data.get("last_action")
        return cls(**values)


class AttributeStore:
    """Holds the current :class:`CareAttributes` snapshot for one pet.

    Every assignment is checked against the [0, 100] bounds. In strict mode an
    out-of-range snapshot raises :class:`InvariantViolation`; otherwise it is
    logged as a programming error and clamped.
    """

    def __init__(self, initial: Optional[CareAttributes] = None, strict: bool = False) -> None:
        self.strict = strict
        self._current = CareAttributes()
        if initial is not None:
            self.replace(initial)

    @property
    def current(self) -> CareAttributes:
        return self._current

    def replace(self, attributes: CareAttributes) -> CareAttributes:
        violations = attributes.out_of_range()
        if violations:
            if self.strict:
                raise InvariantViolation(f"Gauges out of range: {violations}")
            LOGGER.error("Gauge invariant violated, clamping: %s", violations)
            attributes = attributes.clamped()
        self._current = attributes
        return attributes

    def apply_delta(
        self,
        deltas: Mapping[str, float],
        last_action: Optional[str] = None,
    ) -> CareAttributes:
        return self.replace(self._current.with_delta(deltas, last_action=last_action))
