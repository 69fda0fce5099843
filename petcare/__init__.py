"""Pet-care simulation and engagement-scheduling engine."""

from petcare.alerts import AlertPayload, ThresholdAlertArbiter, ThresholdRule
from petcare.attributes import AttributeStore, CareAttributes
from petcare.auto_work import AutoWorkScheduler, AutoWorkTask
from petcare.config import AutoWorkConfig, EngineConfig, ProactiveRequestConfig, UrgencyWeights
from petcare.cooldown import CooldownGate
from petcare.coordinator import EngagementCoordinator, TickResult
from petcare.decay import DecayConfig, apply_decay
from petcare.urgency import ProactiveRequest, UrgencyScorer

__all__ = [
    "AlertPayload",
    "AttributeStore",
    "AutoWorkConfig",
    "AutoWorkScheduler",
    "AutoWorkTask",
    "CareAttributes",
    "CooldownGate",
    "DecayConfig",
    "EngagementCoordinator",
    "EngineConfig",
    "ProactiveRequest",
    "ProactiveRequestConfig",
    "ThresholdAlertArbiter",
    "ThresholdRule",
    "TickResult",
    "UrgencyScorer",
    "UrgencyWeights",
    "apply_decay",
]
