"""Centralized configuration for the pet-care engine."""

from __future__ import annotations

import os
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from petcare.alerts import DEFAULT_RULES, ThresholdRule, validate_rules
from petcare.constants import (
    DEFAULT_AUTO_WORK_DAILY_HOURS,
    DEFAULT_AUTO_WORK_IDLE_MINUTES,
    DEFAULT_AUTO_WORK_MAX_HOURS,
    DEFAULT_AUTO_WORK_MIN_ENERGY,
    DEFAULT_AUTO_WORK_MIN_MOOD,
    DEFAULT_DECLINE_PENALTY,
    DEFAULT_DIFFICULTY,
    DEFAULT_INTERACTION_COOLDOWNS,
    DEFAULT_PROACTIVE_BASE_INTERVAL_MS,
    DEFAULT_PROACTIVE_MAX_INTERVAL_MS,
    DEFAULT_PROACTIVE_MIN_INTERVAL_MS,
    DEFAULT_URGENCY_FLOOR,
    MS_PER_SECOND,
)
from petcare.decay import DECAY_PRESETS, DecayConfig, get_decay_config
from petcare.errors import ConfigurationError


class UrgencyWeights(BaseModel):
    """Weights of each gauge deficit in the urgency score (sum is not enforced)."""

    model_config = ConfigDict(frozen=True)

    energy: float = Field(default=0.4, ge=0)
    satiety: float = Field(default=0.3, ge=0)
    boredom: float = Field(default=0.2, ge=0)
    mood: float = Field(default=0.1, ge=0)


class AutoWorkConfig(BaseModel):
    """Entry guard and caps for the background work task."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    idle_trigger_minutes: float = Field(default=DEFAULT_AUTO_WORK_IDLE_MINUTES, ge=0)
    max_work_hours: float = Field(default=DEFAULT_AUTO_WORK_MAX_HOURS, gt=0)
    daily_max_work_hours: float = Field(default=DEFAULT_AUTO_WORK_DAILY_HOURS, ge=0, le=24)
    min_mood: float = Field(default=DEFAULT_AUTO_WORK_MIN_MOOD, ge=0, le=100)
    min_energy: float = Field(default=DEFAULT_AUTO_WORK_MIN_ENERGY, ge=0, le=100)
    # None leaves the experience-derived reward multiplier unbounded.
    intimacy_bonus_cap: Optional[float] = Field(default=None, ge=1)


class ProactiveRequestConfig(BaseModel):
    """Pacing of proactive "please take care of me" requests."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    base_interval_ms: float = Field(default=DEFAULT_PROACTIVE_BASE_INTERVAL_MS, gt=0)
    min_interval_ms: float = Field(default=DEFAULT_PROACTIVE_MIN_INTERVAL_MS, ge=0)
    max_interval_ms: float = Field(default=DEFAULT_PROACTIVE_MAX_INTERVAL_MS, gt=0)
    decline_penalty: float = Field(default=DEFAULT_DECLINE_PENALTY, ge=1)
    urgency_floor: float = Field(default=DEFAULT_URGENCY_FLOOR, ge=0, le=100)

    @model_validator(mode="after")
    def check_interval_bounds(self) -> "ProactiveRequestConfig":
        if self.min_interval_ms > self.max_interval_ms:
            raise ValueError("min_interval_ms must not exceed max_interval_ms")
        return self


class EngineConfig(BaseModel):
    """Type-safe configuration for one engine instance with validation."""

    model_config = ConfigDict(frozen=True)

    difficulty: str = Field(default=DEFAULT_DIFFICULTY)
    decay: Optional[DecayConfig] = None
    auto_work: AutoWorkConfig = Field(default_factory=AutoWorkConfig)
    proactive: ProactiveRequestConfig = Field(default_factory=ProactiveRequestConfig)
    urgency_weights: UrgencyWeights = Field(default_factory=UrgencyWeights)
    interaction_cooldowns: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_INTERACTION_COOLDOWNS)
    )
    threshold_overrides: Dict[str, float] = Field(default_factory=dict)

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, v: str) -> str:
        if v not in DECAY_PRESETS:
            raise ValueError(f"difficulty must be one of {sorted(DECAY_PRESETS)}")
        return v

    @field_validator("interaction_cooldowns")
    @classmethod
    def validate_cooldowns(cls, v: Dict[str, float]) -> Dict[str, float]:
        negative = [kind for kind, seconds in v.items() if seconds < 0]
        if negative:
            raise ValueError(f"negative interaction cooldown for {', '.join(sorted(negative))}")
        return v

    @field_validator("threshold_overrides")
    @classmethod
    def validate_overrides(cls, v: Dict[str, float]) -> Dict[str, float]:
        known = {rule.id for rule in DEFAULT_RULES}
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"unknown threshold rule id(s): {', '.join(unknown)}")
        return v

    @classmethod
    def create(cls, **kwargs) -> "EngineConfig":
        """Build a config, reporting validation problems as ConfigurationError."""
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables."""
        try:
            return cls.create(
                difficulty=os.getenv("PETCARE_DIFFICULTY", DEFAULT_DIFFICULTY),
                auto_work=AutoWorkConfig(
                    enabled=_env_flag("PETCARE_AUTO_WORK_ENABLED", False),
                    idle_trigger_minutes=float(
                        os.getenv("PETCARE_AUTO_WORK_IDLE_MINUTES", str(DEFAULT_AUTO_WORK_IDLE_MINUTES))
                    ),
                    daily_max_work_hours=float(
                        os.getenv("PETCARE_AUTO_WORK_DAILY_HOURS", str(DEFAULT_AUTO_WORK_DAILY_HOURS))
                    ),
                ),
                proactive=ProactiveRequestConfig(
                    enabled=_env_flag("PETCARE_PROACTIVE_ENABLED", True),
                    base_interval_ms=float(
                        os.getenv(
                            "PETCARE_PROACTIVE_BASE_INTERVAL_MS",
                            str(DEFAULT_PROACTIVE_BASE_INTERVAL_MS),
                        )
                    ),
                    decline_penalty=float(
                        os.getenv("PETCARE_PROACTIVE_DECLINE_PENALTY", str(DEFAULT_DECLINE_PENALTY))
                    ),
                ),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid environment configuration: {exc}") from exc

    def decay_config(self) -> DecayConfig:
        return self.decay if self.decay is not None else get_decay_config(self.difficulty)

    def build_rules(self) -> Tuple[ThresholdRule, ...]:
        """The fixed rule table with threshold value overrides applied."""
        rules = [
            rule.with_threshold(self.threshold_overrides[rule.id])
            if rule.id in self.threshold_overrides
            else rule
            for rule in DEFAULT_RULES
        ]
        return validate_rules(rules)

    def interaction_cooldown_ms(self, kind: str) -> float:
        return self.interaction_cooldowns.get(kind, 0) * MS_PER_SECOND


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
