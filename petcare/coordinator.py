"""Top-level orchestration of decay, alerts, proactive requests and auto work.

One :class:`EngagementCoordinator` exists per pet. It is built once by the
composition root and passed to whatever needs it; every public method runs
inside a single re-entrant lock, which the auto-work completion timer shares.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional

from petcare.alerts import AlertPayload, ThresholdAlertArbiter
from petcare.attributes import AttributeStore, CareAttributes
from petcare.auto_work import AutoWorkScheduler, AutoWorkTask, WorkOutcome, WorkState
from petcare.collaborators import (
    Clock,
    EconomyLedger,
    HistoryLog,
    InMemoryEconomyLedger,
    InMemoryHistoryLog,
    PersistentStateStore,
    SystemClock,
    Timer,
)
from petcare.config import EngineConfig
from petcare.constants import (
    REPORT_BOREDOM_WARNING,
    REPORT_ENERGY_WARNING,
    REPORT_HYGIENE_WARNING,
    REPORT_SATIETY_WARNING,
)
from petcare.cooldown import CooldownGate
from petcare.decay import apply_decay
from petcare.errors import PersistenceFailure
from petcare.event_bus import EventBus, EventType
from petcare.metrics import EngineMetrics
from petcare.structured_logger import StructuredLogger
from petcare.urgency import ProactiveRequest, UrgencyScorer

LOGGER = logging.getLogger(__name__)

INTERACTION_KEY_PREFIX = "interaction:"


@dataclass
class TickResult:
    attributes: CareAttributes
    alert: Optional[AlertPayload] = None
    alert_rule_id: Optional[str] = None
    proactive_request: Optional[ProactiveRequest] = None
    work_started: Optional[AutoWorkTask] = None
    work_completed: Optional[WorkOutcome] = None
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class InteractionReadiness:
    ready: bool
    remaining_ms: float


@dataclass(frozen=True)
class StatusReport:
    summary: str
    warnings: List[str]
    emotion: str
    needs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class WorkStatus:
    state: WorkState
    task: Optional[AutoWorkTask]
    remaining_ms: float
    today_work_hours: float


class EngagementCoordinator:
    """Runs one polling tick at a time against a single pet's state."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[AttributeStore] = None,
        clock: Optional[Clock] = None,
        state_store: Optional[PersistentStateStore] = None,
        economy: Optional[EconomyLedger] = None,
        history: Optional[HistoryLog] = None,
        timer: Optional[Timer] = None,
        rng: Optional[random.Random] = None,
        event_bus: Optional[EventBus] = None,
        experience_source: Optional[Callable[[], float]] = None,
        metrics: Optional[EngineMetrics] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.clock = clock or SystemClock()
        self.store = store or AttributeStore()
        self.event_bus = event_bus or EventBus()
        self.metrics = metrics or EngineMetrics()
        self.cooldowns = CooldownGate()
        self.decay_config = self.config.decay_config()
        self.arbiter = ThresholdAlertArbiter(self.config.build_rules())
        rng = rng or random.Random()
        self.scorer = UrgencyScorer(self.config.proactive, self.config.urgency_weights, rng)

        self._lock = threading.RLock()
        self._state_store = state_store
        self._structured_logger = StructuredLogger(__name__)
        self.work = AutoWorkScheduler(
            store=self.store,
            economy=economy or InMemoryEconomyLedger(),
            history=history or InMemoryHistoryLog(),
            config=self.config.auto_work,
            timer=timer,
            clock=self.clock,
            rng=rng,
            lock=self._lock,
            event_bus=self.event_bus,
            experience_source=experience_source,
            on_complete=self._after_work,
        )

        now = self.clock.now_ms()
        self._last_tick_ms = now
        self._last_interaction_ms = now
        self._last_request_ms = 0.0

    @property
    def attributes(self) -> CareAttributes:
        return self.store.current

    @property
    def last_request_time(self) -> float:
        return self._last_request_ms

    @property
    def last_interaction_time(self) -> float:
        return self._last_interaction_ms

    def tick(
        self,
        elapsed_ms: Optional[float] = None,
        decline_count: int = 0,
        now: Optional[float] = None,
    ) -> TickResult:
        """Advance the simulation by one polling step.

        Args:
            elapsed_ms: Time to decay by. Defaults to the time since the
                previous tick.
            decline_count: Consecutive proactive requests the user declined.
            now: Current epoch milliseconds; read from the clock if omitted.

        Returns:
            The post-decay attributes plus at most one of alert or proactive
            request, the work task if one was started and the outcome of
            any overdue work finished on this tick.
        """
        started = time.monotonic()
        with self._lock:
            now = self.clock.now_ms() if now is None else now
            if elapsed_ms is None:
                elapsed_ms = now - self._last_tick_ms
            self._last_tick_ms = now

            # Without a timer (or with one that lags), overdue work finishes here.
            completed = None
            task = self.work.active_task
            if task is not None and task.end_time <= now:
                completed = self.work.complete(task.id, task.end_time)

            attributes = self.store.replace(
                apply_decay(self.store.current, elapsed_ms, self.decay_config)
            )
            result = TickResult(attributes=attributes, work_completed=completed)
            self.event_bus.publish(EventType.ATTRIBUTES_DECAYED, attributes)

            rule = self.arbiter.evaluate_rule(attributes, self.cooldowns, now)
            if rule is not None:
                result.alert = rule.payload
                result.alert_rule_id = rule.id
                self.metrics.record_alert()
                self._structured_logger.log_alert(
                    rule.id, rule.payload.priority, rule.payload.message, attributes.to_dict()
                )
                self.event_bus.publish(EventType.ALERT_RAISED, rule.payload)
            else:
                decision = self.scorer.can_trigger(
                    attributes, self._last_request_ms, decline_count, now
                )
                if decision.allowed:
                    request = self.scorer.create_request(attributes, now)
                    self._last_request_ms = now
                    result.proactive_request = request
                    self.metrics.record_proactive_request()
                    self._structured_logger.log_proactive_request(
                        request.type.value, request.urgency, decline_count, decision.interval_ms
                    )
                    self.event_bus.publish(EventType.PROACTIVE_REQUEST, request)
                else:
                    LOGGER.debug("Proactive request skipped: %s", decision.reason)

            if (
                result.alert is None
                and result.proactive_request is None
                and self.work.check_should_start(attributes, self._last_interaction_ms, now)
            ):
                result.work_started = self.work.start(now)

            if self._state_store is not None and not self.save_state():
                result.warnings.append("Failed to save care state; keeping in-memory state")

            result.attributes = self.store.current
        self.metrics.record_tick(time.monotonic() - started)
        return result

    def record_interaction(
        self,
        kind: str,
        now: Optional[float] = None,
        effects: Optional[Mapping[str, float]] = None,
    ) -> CareAttributes:
        """Register a direct user interaction.

        Records the interaction cooldown, resets the idle clock, applies any
        caller-supplied gauge effects and interrupts auto work in progress.
        Readiness is not checked here; use :meth:`is_interaction_ready` first.
        """
        with self._lock:
            now = self.clock.now_ms() if now is None else now
            self.cooldowns.record(INTERACTION_KEY_PREFIX + kind, now)
            self._last_interaction_ms = now
            attributes = self.store.apply_delta(effects or {}, last_action=kind)
            if self.work.is_working:
                self.work.cancel()
            self.event_bus.publish(EventType.INTERACTION_RECORDED, {"kind": kind, "at": now})
            return attributes

    def is_interaction_ready(self, kind: str, now: Optional[float] = None) -> InteractionReadiness:
        with self._lock:
            now = self.clock.now_ms() if now is None else now
            key = INTERACTION_KEY_PREFIX + kind
            cooldown_ms = self.config.interaction_cooldown_ms(kind)
            return InteractionReadiness(
                ready=self.cooldowns.is_ready(key, now, cooldown_ms),
                remaining_ms=self.cooldowns.remaining(key, now, cooldown_ms),
            )

    def start_work(self, now: Optional[float] = None, force: bool = False) -> Optional[AutoWorkTask]:
        """Start auto work if the entry guard allows it (or unconditionally with ``force``)."""
        with self._lock:
            now = self.clock.now_ms() if now is None else now
            if not force and not self.work.check_should_start(
                self.store.current, self._last_interaction_ms, now
            ):
                LOGGER.debug("Auto work not started: entry guard not satisfied")
                return None
            return self.work.start(now)

    def cancel_work(self) -> bool:
        with self._lock:
            return self.work.cancel()

    def get_work_status(self, now: Optional[float] = None) -> WorkStatus:
        with self._lock:
            now = self.clock.now_ms() if now is None else now
            task = self.work.active_task
            remaining = max(0.0, task.end_time - now) if task is not None else 0.0
            return WorkStatus(
                state=self.work.state,
                task=task,
                remaining_ms=remaining,
                today_work_hours=self.work.today_work_hours(now),
            )

    def get_status_report(self) -> StatusReport:
        """Summarize the gauges for display.

        ``warnings`` are the soft report hints; ``needs`` are the messages of
        every threshold rule currently satisfied, ignoring cooldowns. An
        urgent rule firing makes the pet sad.
        """
        attributes = self.store.current
        warnings: List[str] = []
        if attributes.satiety < REPORT_SATIETY_WARNING:
            warnings.append("A little hungry, how about a snack?")
        if attributes.hygiene < REPORT_HYGIENE_WARNING:
            warnings.append("Needs a wash or a brush")
        if attributes.energy < REPORT_ENERGY_WARNING:
            warnings.append("A bit sleepy, needs some rest")
        if attributes.boredom > REPORT_BOREDOM_WARNING:
            warnings.append("A bit bored, play with me for a while")

        if len(warnings) >= 2 or self.arbiter.is_urgent(attributes):
            emotion = "sad"
        elif len(warnings) == 1:
            emotion = "confused"
        else:
            emotion = "happy"

        summary = (
            f"Status: satiety {round(attributes.satiety)} | energy {round(attributes.energy)}"
            f" | hygiene {round(attributes.hygiene)} | mood {round(attributes.mood)}"
            f" | boredom {round(attributes.boredom)}"
        )
        return StatusReport(
            summary=summary,
            warnings=warnings,
            emotion=emotion,
            needs=self.arbiter.warnings(attributes),
        )

    def load_state(self) -> bool:
        """Replace the in-memory gauges with the persisted snapshot.

        Returns:
            False when the collaborator failed; the in-memory state is kept.
        """
        if self._state_store is None:
            return True
        with self._lock:
            try:
                loaded = self._state_store.load()
            except Exception as exc:
                self._persistence_failed("load", exc)
                return False
            if loaded is None:
                LOGGER.info("No persisted care state, using defaults")
                return True
            self.store.replace(loaded)
            LOGGER.info("Loaded care state from persistence")
            return True

    def save_state(self) -> bool:
        if self._state_store is None:
            return True
        with self._lock:
            try:
                self._state_store.save(self.store.current)
            except Exception as exc:
                self._persistence_failed("save", exc)
                return False
            return True

    def reset_cooldowns(self) -> None:
        with self._lock:
            self.cooldowns.reset_all()

    def _after_work(self, outcome: WorkOutcome) -> None:
        if outcome.success:
            self.metrics.record_work_session()
            self.save_state()
        else:
            self.metrics.record_error()

    def _persistence_failed(self, operation: str, exc: Exception) -> None:
        failure = PersistenceFailure(operation, str(exc))
        failure.__cause__ = exc
        LOGGER.warning("%s; keeping in-memory state", failure)
        self.metrics.record_error()
        self._structured_logger.log_error("PersistenceFailure", str(failure), {"operation": operation})
        self.event_bus.publish(EventType.PERSISTENCE_FAILED, failure)
