"""Threshold-triggered care alerts and the arbiter that picks one per tick."""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from petcare.attributes import GAUGES, CareAttributes
from petcare.constants import MS_PER_MINUTE
from petcare.cooldown import CooldownGate
from petcare.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)


class Comparator(Enum):
    """Comparison applied between a gauge and a rule threshold."""
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="

    def apply(self, value: float, threshold: float) -> bool:
        return _COMPARATORS[self](value, threshold)


_COMPARATORS: Dict[Comparator, Callable[[float, float], bool]] = {
    Comparator.LT: operator.lt,
    Comparator.GT: operator.gt,
    Comparator.LE: operator.le,
    Comparator.GE: operator.ge,
}


class AlertPriority(IntEnum):
    URGENT = 10  # sick, starving
    HIGH = 8     # needs attention
    MEDIUM = 5   # general hint
    LOW = 3      # small talk


@dataclass(frozen=True)
class AlertAction:
    label: str
    action: str  # interaction kind, or "dismiss"


@dataclass(frozen=True)
class AlertPayload:
    """What a display layer needs to show an alert bubble.

    ``duration_ms == 0`` means the bubble persists until the need is resolved.
    """
    priority: int
    message: str
    emotion: str
    actions: Tuple[AlertAction, ...] = ()
    duration_ms: int = 6000
    dismissible: bool = True

    @property
    def persistent(self) -> bool:
        return self.duration_ms == 0


@dataclass(frozen=True)
class ThresholdRule:
    """One fixed alert rule; ``id`` doubles as the cooldown key."""
    id: str
    attribute: str
    comparator: Comparator
    threshold: float
    cooldown_ms: int
    payload: AlertPayload = field(compare=False)

    def matches(self, attributes: CareAttributes) -> bool:
        return self.comparator.apply(attributes.gauge(self.attribute), self.threshold)

    def with_threshold(self, threshold: float) -> "ThresholdRule":
        return replace(self, threshold=float(threshold))


# Ordered from most to least severe; ties in priority keep this order.
DEFAULT_RULES: Tuple[ThresholdRule, ...] = (
    ThresholdRule(
        id="satiety_critical",
        attribute="satiety",
        comparator=Comparator.LT,
        threshold=15,
        cooldown_ms=15 * MS_PER_MINUTE,
        payload=AlertPayload(
            priority=AlertPriority.URGENT,
            message="So hungry... I'm about to faint...",
            emotion="sad",
            actions=(AlertAction("Feed now", "feed"),),
            duration_ms=0,
            dismissible=False,
        ),
    ),
    ThresholdRule(
        id="mood_critical",
        attribute="mood",
        comparator=Comparator.LT,
        threshold=15,
        cooldown_ms=15 * MS_PER_MINUTE,
        payload=AlertPayload(
            priority=AlertPriority.URGENT,
            message="I feel awful... I need some comfort...",
            emotion="sad",
            actions=(AlertAction("Comfort", "pet"),),
            duration_ms=0,
            dismissible=False,
        ),
    ),
    ThresholdRule(
        id="sick",
        attribute="is_sick",
        comparator=Comparator.GT,
        threshold=0,
        cooldown_ms=10 * MS_PER_MINUTE,
        payload=AlertPayload(
            priority=AlertPriority.URGENT,
            message="I don't feel well... my head is spinning...",
            emotion="sad",
            actions=(AlertAction("Take care of me", "pet"),),
            duration_ms=0,
            dismissible=False,
        ),
    ),
    ThresholdRule(
        id="satiety_low",
        attribute="satiety",
        comparator=Comparator.LT,
        threshold=30,
        cooldown_ms=30 * MS_PER_MINUTE,
        payload=AlertPayload(
            priority=AlertPriority.HIGH,
            message="My tummy is rumbling...",
            emotion="sad",
            actions=(AlertAction("Feed", "feed"), AlertAction("Later", "dismiss")),
            duration_ms=8000,
        ),
    ),
    ThresholdRule(
        id="energy_low",
        attribute="energy",
        comparator=Comparator.LT,
        threshold=20,
        cooldown_ms=20 * MS_PER_MINUTE,
        payload=AlertPayload(
            priority=AlertPriority.HIGH - 1,
            message="So sleepy... I want to rest a bit...",
            emotion="neutral",
            actions=(AlertAction("Keep me company", "pet"), AlertAction("Later", "dismiss")),
        ),
    ),
    ThresholdRule(
        id="mood_low",
        attribute="mood",
        comparator=Comparator.LT,
        threshold=30,
        cooldown_ms=25 * MS_PER_MINUTE,
        payload=AlertPayload(
            priority=AlertPriority.HIGH - 1,
            message="I'm a little down...",
            emotion="sad",
            actions=(AlertAction("Pat my head", "pet"), AlertAction("Play together", "play")),
        ),
    ),
    ThresholdRule(
        id="boredom_high",
        attribute="boredom",
        comparator=Comparator.GT,
        threshold=70,
        cooldown_ms=15 * MS_PER_MINUTE,
        payload=AlertPayload(
            priority=AlertPriority.MEDIUM,
            message="So bored... play with me~",
            emotion="neutral",
            actions=(AlertAction("Play", "play"), AlertAction("Later", "dismiss")),
        ),
    ),
)


def validate_rules(rules: Iterable[ThresholdRule]) -> Tuple[ThresholdRule, ...]:
    """Check rule ids are unique and every rule selects a known attribute."""
    checked: List[ThresholdRule] = []
    seen = set()
    for rule in rules:
        if rule.id in seen:
            raise ConfigurationError(f"Duplicate threshold rule id: {rule.id}")
        if rule.attribute not in GAUGES and rule.attribute != "is_sick":
            raise ConfigurationError(f"Rule {rule.id} selects unknown attribute {rule.attribute!r}")
        if not isinstance(rule.comparator, Comparator):
            raise ConfigurationError(f"Rule {rule.id} has invalid comparator {rule.comparator!r}")
        if rule.cooldown_ms < 0:
            raise ConfigurationError(f"Rule {rule.id} has negative cooldown")
        seen.add(rule.id)
        checked.append(rule)
    return tuple(checked)


def select_rule(
    attributes: CareAttributes,
    rules: Sequence[ThresholdRule],
    cooldown_gate: CooldownGate,
    now: float,
) -> Optional[ThresholdRule]:
    """Pick the highest-priority rule that fires and is out of cooldown.

    Only the winner's cooldown is recorded, so a rule that lost arbitration
    can still fire on a later tick.
    """
    candidates = [
        rule
        for rule in rules
        if cooldown_gate.is_ready(rule.id, now, rule.cooldown_ms) and rule.matches(attributes)
    ]
    if not candidates:
        return None
    # sorted() is stable, so equal priorities keep table order.
    winner = sorted(candidates, key=lambda rule: rule.payload.priority, reverse=True)[0]
    cooldown_gate.record(winner.id, now)
    if len(candidates) > 1:
        LOGGER.debug(
            "Alert %s won over %s",
            winner.id,
            ", ".join(rule.id for rule in candidates if rule is not winner),
        )
    return winner


def evaluate(
    attributes: CareAttributes,
    rules: Sequence[ThresholdRule],
    cooldown_gate: CooldownGate,
    now: float,
) -> Optional[AlertPayload]:
    rule = select_rule(attributes, rules, cooldown_gate, now)
    return rule.payload if rule else None


class ThresholdAlertArbiter:
    """Evaluates a fixed rule table against the current gauges."""

    def __init__(self, rules: Optional[Iterable[ThresholdRule]] = None) -> None:
        self.rules = validate_rules(DEFAULT_RULES if rules is None else rules)

    def evaluate(
        self,
        attributes: CareAttributes,
        cooldown_gate: CooldownGate,
        now: float,
    ) -> Optional[AlertPayload]:
        return evaluate(attributes, self.rules, cooldown_gate, now)

    def evaluate_rule(
        self,
        attributes: CareAttributes,
        cooldown_gate: CooldownGate,
        now: float,
    ) -> Optional[ThresholdRule]:
        return select_rule(attributes, self.rules, cooldown_gate, now)

    def warnings(self, attributes: CareAttributes) -> List[str]:
        """Messages of every rule currently satisfied, ignoring cooldowns."""
        return [rule.payload.message for rule in self.rules if rule.matches(attributes)]

    def is_urgent(self, attributes: CareAttributes) -> bool:
        return any(
            rule.matches(attributes)
            for rule in self.rules
            if rule.payload.priority >= AlertPriority.URGENT
        )

    def get_rule(self, rule_id: str) -> ThresholdRule:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        raise KeyError(rule_id)
