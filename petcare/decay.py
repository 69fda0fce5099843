"""Time-based gauge decay.

Decay is computed from elapsed wall-clock time rather than by counting timer
ticks, so one catch-up call after the app was closed behaves like many small
ones, up to the per-application cap.
"""

from __future__ import annotations

import logging
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from petcare.attributes import CareAttributes
from petcare.constants import MS_PER_HOUR
from petcare.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)


class DecayConfig(BaseModel):
    """Per-hour decay rates and the single-application cap."""

    model_config = ConfigDict(frozen=True)

    satiety_per_hour: float = Field(default=8.0, ge=0)
    energy_per_hour: float = Field(default=5.0, ge=0)
    mood_per_hour: float = Field(default=3.0, ge=0)
    hygiene_per_hour: float = Field(default=3.0, ge=0)
    # Boredom rises by this amount per hour instead of falling.
    boredom_per_hour: float = Field(default=4.0, ge=0)
    max_decay_per_application: float = Field(default=40.0, ge=0, le=100)


DECAY_PRESETS: Dict[str, DecayConfig] = {
    "normal": DecayConfig(),
    "easy": DecayConfig(
        satiety_per_hour=4.0,
        energy_per_hour=2.0,
        mood_per_hour=1.0,
        hygiene_per_hour=1.5,
        boredom_per_hour=2.0,
        max_decay_per_application=30.0,
    ),
    "hard": DecayConfig(
        satiety_per_hour=20.0,
        energy_per_hour=15.0,
        mood_per_hour=10.0,
        hygiene_per_hour=8.0,
        boredom_per_hour=10.0,
        max_decay_per_application=50.0,
    ),
}


def get_decay_config(difficulty: str = "normal") -> DecayConfig:
    try:
        return DECAY_PRESETS[difficulty]
    except KeyError:
        raise ConfigurationError(
            f"Unknown difficulty {difficulty!r}; expected one of {sorted(DECAY_PRESETS)}"
        ) from None


def decay_amount(elapsed_hours: float, rate_per_hour: float, cap: float) -> float:
    return min(cap, elapsed_hours * rate_per_hour)


def apply_decay(
    attributes: CareAttributes,
    elapsed_ms: float,
    config: DecayConfig,
) -> CareAttributes:
    """Return ``attributes`` aged by ``elapsed_ms``.

    Args:
        attributes: Snapshot to age. It is not modified.
        elapsed_ms: Wall-clock time since the previous application. Zero or
            negative values (clock skew) return the snapshot unchanged.
        config: Decay rates and the per-application cap.

    Returns:
        A new snapshot with satiety, energy, mood and hygiene lowered (floored
        at 0) and boredom raised (capped at 100).
    """
    if elapsed_ms <= 0:
        if elapsed_ms < 0:
            LOGGER.debug("Ignoring negative elapsed time %.0fms", elapsed_ms)
        return attributes

    hours = elapsed_ms / MS_PER_HOUR
    cap = config.max_decay_per_application
    return attributes.with_delta(
        {
            "satiety": -decay_amount(hours, config.satiety_per_hour, cap),
            "energy": -decay_amount(hours, config.energy_per_hour, cap),
            "mood": -decay_amount(hours, config.mood_per_hour, cap),
            "hygiene": -decay_amount(hours, config.hygiene_per_hour, cap),
            "boredom": decay_amount(hours, config.boredom_per_hour, cap),
        }
    )
