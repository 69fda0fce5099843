"""Urgency scoring and pacing of proactive care requests.

The pacing logic is a handful of formulas:

* ``score``: weighted deficits, rounded and clamped to [0, 100].
* ``next_interval``: ``base / (urgency / 50)`` scaled by
  ``decline_penalty ** decline_count`` and clamped to the configured bounds.
* ``select_request_type``: argmax over a small score map.
"""

from __future__ import annotations

import logging
import math
import random
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from petcare.attributes import CareAttributes
from petcare.config import ProactiveRequestConfig, UrgencyWeights
from petcare.constants import MS_PER_SECOND

LOGGER = logging.getLogger(__name__)


class RequestType(Enum):
    """Declaration order is the tie-break order."""
    NEED_ATTENTION = "need_attention"
    HUNGRY = "hungry"
    BORED = "bored"


@dataclass
class ProactiveRequest:
    id: str
    type: RequestType
    urgency: int
    message: str
    emotion: str
    suggested_interaction: str
    timestamp: float
    responded: bool = False


@dataclass(frozen=True)
class TriggerDecision:
    allowed: bool
    reason: Optional[str] = None
    urgency: int = 0
    interval_ms: float = 0


_REQUEST_LINES: Dict[RequestType, Tuple[str, ...]] = {
    RequestType.HUNGRY: (
        "I'm a bit hungry... snack time?",
        "So hungry, could you feed me?",
        "I smell something tasty, is it a snack?",
    ),
    RequestType.BORED: (
        "So bored, play with me for a while~",
        "Hey hey, let's play together!",
        "Bored to death... shall we do something fun?",
    ),
}

_SUGGESTED_INTERACTION: Dict[RequestType, str] = {
    RequestType.NEED_ATTENTION: "pet",
    RequestType.HUNGRY: "feed",
    RequestType.BORED: "play",
}

_REQUEST_EMOTION: Dict[RequestType, str] = {
    RequestType.NEED_ATTENTION: "sad",
    RequestType.HUNGRY: "confused",
    RequestType.BORED: "neutral",
}


def deficit(value: float) -> float:
    return max(0.0, 100.0 - value)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score(attributes: CareAttributes, weights: UrgencyWeights) -> int:
    """Return the 0-100 urgency of ``attributes``.

    Satiety, energy and mood contribute their deficit; boredom already is a
    badness scale and contributes its raw value.
    """
    urgency = (
        deficit(attributes.energy) * weights.energy
        + deficit(attributes.satiety) * weights.satiety
        + max(0.0, attributes.boredom) * weights.boredom
        + deficit(attributes.mood) * weights.mood
    )
    return max(0, min(100, round_half_up(urgency)))


def next_interval(urgency: float, config: ProactiveRequestConfig, decline_count: int) -> float:
    """Milliseconds that must pass before the next proactive request.

    Args:
        urgency: Score from :func:`score`; values below 1 count as 1.
        config: Interval bounds and decline penalty.
        decline_count: Consecutive user refusals supplied by the caller.
    """
    base = config.base_interval_ms / (max(1.0, urgency) / 50.0)
    penalty = config.decline_penalty ** max(0, decline_count)
    interval = base * penalty
    return max(config.min_interval_ms, min(config.max_interval_ms, interval))


def select_request_type(attributes: CareAttributes) -> RequestType:
    scores = {
        RequestType.NEED_ATTENTION: max(deficit(attributes.energy), deficit(attributes.mood)),
        RequestType.HUNGRY: deficit(attributes.satiety),
        RequestType.BORED: attributes.boredom,
    }
    # max() keeps the first maximal entry, i.e. declaration order on ties.
    return max(scores, key=scores.__getitem__)


class UrgencyScorer:
    """Decides when, and for what, the pet proactively asks the user."""

    def __init__(
        self,
        config: Optional[ProactiveRequestConfig] = None,
        weights: Optional[UrgencyWeights] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or ProactiveRequestConfig()
        self.weights = weights or UrgencyWeights()
        self._rng = rng or random.Random()

    def score(self, attributes: CareAttributes) -> int:
        return score(attributes, self.weights)

    def next_interval(self, urgency: float, decline_count: int = 0) -> float:
        return next_interval(urgency, self.config, decline_count)

    def select_request_type(self, attributes: CareAttributes) -> RequestType:
        return select_request_type(attributes)

    def can_trigger(
        self,
        attributes: CareAttributes,
        last_request_time: float,
        decline_count: int,
        now: float,
    ) -> TriggerDecision:
        """Check the feature flag, the paced interval and the urgency floor."""
        if not self.config.enabled:
            return TriggerDecision(False, "disabled")

        urgency = self.score(attributes)
        interval = self.next_interval(urgency, decline_count)
        elapsed = now - last_request_time
        if elapsed < interval:
            remaining_s = round((interval - elapsed) / MS_PER_SECOND)
            return TriggerDecision(
                False,
                f"interval_not_met ({remaining_s}s remaining)",
                urgency=urgency,
                interval_ms=interval,
            )

        if urgency < self.config.urgency_floor:
            return TriggerDecision(False, "urgency_too_low", urgency=urgency, interval_ms=interval)

        return TriggerDecision(True, urgency=urgency, interval_ms=interval)

    def create_request(self, attributes: CareAttributes, now: float) -> ProactiveRequest:
        request_type = self.select_request_type(attributes)
        return ProactiveRequest(
            id=f"req_{int(now)}_{uuid.uuid4().hex[:7]}",
            type=request_type,
            urgency=self.score(attributes),
            message=self._message_for(request_type, attributes),
            emotion=_REQUEST_EMOTION[request_type],
            suggested_interaction=_SUGGESTED_INTERACTION[request_type],
            timestamp=now,
        )

    def _message_for(self, request_type: RequestType, attributes: CareAttributes) -> str:
        if request_type is RequestType.NEED_ATTENTION:
            tired = attributes.energy < 30
            down = attributes.mood < 30
            if tired and down:
                return "So tired... and a bit sad too, could you stay with me?"
            if tired:
                return "I'm so tired~ shall we take a break together?"
            return "I'm not feeling great... could you give me a hug?"
        return self._rng.choice(_REQUEST_LINES[request_type])
