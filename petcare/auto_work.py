"""Autonomous background work: the pet earns coins while the user is away.

At most one task is in flight. Completion is delivered by a timer on a
separate callback path, so every state change goes through the shared lock
and each scheduled completion carries a generation number; cancelling bumps
the generation, which turns an already-queued completion into a no-op.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from petcare.attributes import AttributeStore, CareAttributes
from petcare.collaborators import Clock, EconomyLedger, HistoryLog, SystemClock, Timer, TimerHandle
from petcare.config import AutoWorkConfig
from petcare.constants import (
    DEFAULT_HISTORY_LIMIT,
    EXPERIENCE_PER_COIN,
    INTIMACY_BONUS_DIVISOR,
    MS_PER_HOUR,
    MS_PER_MINUTE,
    MS_PER_SECOND,
)
from petcare.errors import TaskStateConflict
from petcare.event_bus import EventBus, EventType
from petcare.structured_logger import StructuredLogger

LOGGER = logging.getLogger(__name__)


class WorkTier(Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


@dataclass(frozen=True)
class WorkDifficulty:
    tier: WorkTier
    base_duration_hours: float
    base_coins: int
    mood_cost: float
    energy_cost: float
    variance: float  # duration jitter, +/- fraction
    weight: float    # probability of being picked


WORK_DIFFICULTIES: Dict[WorkTier, WorkDifficulty] = {
    WorkTier.EASY: WorkDifficulty(WorkTier.EASY, 0.5, 10, 8, 12, 0.3, 0.50),
    WorkTier.NORMAL: WorkDifficulty(WorkTier.NORMAL, 1.0, 25, 12, 18, 0.25, 0.35),
    WorkTier.HARD: WorkDifficulty(WorkTier.HARD, 2.0, 60, 18, 25, 0.2, 0.15),
}


@dataclass(frozen=True)
class WorkReward:
    coins: int
    experience: int


@dataclass(frozen=True)
class WorkCost:
    mood: float
    energy: float


@dataclass(frozen=True)
class AutoWorkTask:
    id: str
    tier: WorkTier
    start_time: float
    end_time: float
    reward: WorkReward
    cost: WorkCost

    @property
    def duration_ms(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class AutoWorkHistoryRecord:
    id: str
    task_id: str
    tier: WorkTier
    start_time: float
    end_time: float
    duration_hours: float
    reward_coins: int
    reward_experience: int
    mood_consumed: float
    energy_consumed: float
    intimacy_bonus: float


class WorkState(Enum):
    IDLE = "idle"
    WORKING = "working"
    # Only observable while rewards are being applied.
    COMPLETED = "completed"


@dataclass
class WorkOutcome:
    success: bool
    task: AutoWorkTask
    record: Optional[AutoWorkHistoryRecord] = None
    attributes: Optional[CareAttributes] = None
    error: Optional[Exception] = None


def _day_key(now: float) -> str:
    return datetime.fromtimestamp(now / MS_PER_SECOND, UTC).date().isoformat()


class AutoWorkScheduler:
    """Owns the single in-flight :class:`AutoWorkTask`.

    State machine: ``idle -> working -> idle``. Rewards go to the economy
    collaborator and the mood/energy cost is debited from the attribute store
    only after every collaborator call succeeded.
    """

    def __init__(
        self,
        store: AttributeStore,
        economy: EconomyLedger,
        history: HistoryLog,
        config: Optional[AutoWorkConfig] = None,
        timer: Optional[Timer] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        lock: Optional[threading.RLock] = None,
        event_bus: Optional[EventBus] = None,
        experience_source: Optional[Callable[[], float]] = None,
        on_complete: Optional[Callable[[WorkOutcome], None]] = None,
    ) -> None:
        self._store = store
        self._economy = economy
        self._history = history
        self.config = config or AutoWorkConfig()
        self._timer = timer
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._lock = lock or threading.RLock()
        self._event_bus = event_bus
        self._experience_source = experience_source
        self._on_complete = on_complete
        self._structured_logger = StructuredLogger(__name__)

        self._state = WorkState.IDLE
        self._active: Optional[AutoWorkTask] = None
        self._handle: Optional[TimerHandle] = None
        self._generation = 0
        self._completed: Deque[AutoWorkHistoryRecord] = deque(maxlen=DEFAULT_HISTORY_LIMIT)
        self._hours_by_day: Dict[str, float] = {}

    @property
    def state(self) -> WorkState:
        return self._state

    @property
    def active_task(self) -> Optional[AutoWorkTask]:
        return self._active

    @property
    def is_working(self) -> bool:
        return self._active is not None

    @property
    def history(self) -> Tuple[AutoWorkHistoryRecord, ...]:
        return tuple(self._completed)

    def today_work_hours(self, now: float) -> float:
        return self._hours_by_day.get(_day_key(now), 0.0)

    def check_should_start(
        self,
        attributes: CareAttributes,
        last_interaction_ms: float,
        now: float,
    ) -> bool:
        """Entry guard for starting a task on the pet's own initiative."""
        if not self.config.enabled:
            return False
        if self._active is not None or self._state is not WorkState.IDLE:
            return False

        idle_ms = now - last_interaction_ms
        if idle_ms < self.config.idle_trigger_minutes * MS_PER_MINUTE:
            return False

        if attributes.mood <= self.config.min_mood or attributes.energy <= self.config.min_energy:
            LOGGER.debug("Mood or energy too low to work")
            return False

        if self.today_work_hours(now) >= self.config.daily_max_work_hours:
            LOGGER.debug("Daily work limit reached")
            return False

        return True

    def select_tier(self) -> WorkTier:
        roll = self._rng.random()
        cumulative = 0.0
        for difficulty in WORK_DIFFICULTIES.values():
            cumulative += difficulty.weight
            if roll < cumulative:
                return difficulty.tier
        return WorkTier.HARD

    def create_task(self, tier: WorkTier, now: float) -> AutoWorkTask:
        difficulty = WORK_DIFFICULTIES[tier]
        jitter = (self._rng.random() - 0.5) * 2 * difficulty.variance
        hours = min(difficulty.base_duration_hours * (1 + jitter), self.config.max_work_hours)
        return AutoWorkTask(
            id=str(uuid.uuid4()),
            tier=tier,
            start_time=now,
            end_time=now + hours * MS_PER_HOUR,
            reward=WorkReward(
                coins=difficulty.base_coins,
                experience=math.floor(difficulty.base_coins * EXPERIENCE_PER_COIN),
            ),
            cost=WorkCost(mood=difficulty.mood_cost, energy=difficulty.energy_cost),
        )

    def start(self, now: Optional[float] = None) -> Optional[AutoWorkTask]:
        """Create a task and schedule its completion; returns immediately.

        Returns:
            The new task, or None when a task is already active.
        """
        with self._lock:
            if self._active is not None or self._state is not WorkState.IDLE:
                self._conflict("start", self._active.id if self._active else None, "task already active")
                return None

            now = self._clock.now_ms() if now is None else now
            task = self.create_task(self.select_tier(), now)
            self._active = task
            self._state = WorkState.WORKING
            self._generation += 1
            if self._timer is not None:
                self._handle = self._timer.call_later(
                    task.duration_ms / MS_PER_SECOND, self._fire, task.id, self._generation
                )

            LOGGER.info(
                "Started %s work %s, due in %.1f minutes",
                task.tier.value,
                task.id,
                task.duration_ms / MS_PER_MINUTE,
            )
            self._structured_logger.log_work_event(
                "started", task.id, {"tier": task.tier.value, "duration_ms": round(task.duration_ms)}
            )
            self._publish(EventType.WORK_STARTED, task)
            return task

    def complete(
        self,
        task_id: str,
        now: Optional[float] = None,
        experience: Optional[float] = None,
    ) -> Optional[WorkOutcome]:
        """Apply rewards and costs for ``task_id`` and return to idle.

        Args:
            task_id: Id of the task expected to be active. A mismatch is a
                logged no-op.
            now: Completion time; read from the clock when omitted.
            experience: Current pet experience used for the reward
                multiplier ``1 + experience / 1000``. Falls back to the
                configured experience source, then to the task's own base
                experience.

        Returns:
            The outcome, or None when the id did not match the active task.
            A failed collaborator call yields ``success=False`` with the
            attributes left untouched.
        """
        with self._lock:
            task = self._active
            if task is None or task.id != task_id:
                self._conflict("complete", task_id, "no matching active task")
                return None

            self._cancel_handle()
            self._generation += 1
            self._active = None
            self._state = WorkState.COMPLETED
            now = self._clock.now_ms() if now is None else now

            try:
                outcome = self._apply_completion(task, now, experience)
            except Exception as exc:
                LOGGER.error("Failed to complete work %s: %s", task.id, exc)
                self._structured_logger.log_error(
                    type(exc).__name__, str(exc), {"task_id": task.id, "action": "complete"}
                )
                outcome = WorkOutcome(success=False, task=task, error=exc)
                self._publish(EventType.WORK_FAILED, outcome)
            else:
                self._publish(EventType.WORK_COMPLETED, outcome)
            finally:
                self._state = WorkState.IDLE

            if self._on_complete is not None:
                self._on_complete(outcome)
            return outcome

    def cancel(self, task_id: Optional[str] = None) -> bool:
        """Drop the active task without reward or cost.

        Safe to call repeatedly and after completion already happened.
        """
        with self._lock:
            task = self._active
            if task is None:
                LOGGER.debug("No active work to cancel")
                return False
            if task_id is not None and task_id != task.id:
                self._conflict("cancel", task_id, "stale task id")
                return False

            self._cancel_handle()
            self._generation += 1
            self._active = None
            self._state = WorkState.IDLE
            LOGGER.info("Cancelled work %s", task.id)
            self._structured_logger.log_work_event("cancelled", task.id)
            self._publish(EventType.WORK_CANCELLED, task)
            return True

    def get_work_statistics(self, now: float) -> Dict[str, Any]:
        records = list(self._completed)
        total_hours = sum(record.duration_hours for record in records)
        return {
            "is_working": self._state is WorkState.WORKING,
            "current_task": self._active,
            "today_work_hours": self.today_work_hours(now),
            "total_sessions": len(records),
            "total_hours": total_hours,
            "total_coins": sum(record.reward_coins for record in records),
            "total_experience": sum(record.reward_experience for record in records),
            "average_session_hours": total_hours / len(records) if records else 0.0,
        }

    def intimacy_bonus(self, experience: float) -> float:
        bonus = 1 + max(0.0, experience) / INTIMACY_BONUS_DIVISOR
        cap = self.config.intimacy_bonus_cap
        return min(bonus, cap) if cap is not None else bonus

    def _apply_completion(
        self,
        task: AutoWorkTask,
        now: float,
        experience: Optional[float],
    ) -> WorkOutcome:
        if experience is None:
            experience = (
                self._experience_source()
                if self._experience_source is not None
                else task.reward.experience
            )
        bonus = self.intimacy_bonus(experience)
        coins = math.floor(task.reward.coins * bonus)
        exp = math.floor(task.reward.experience * bonus)

        debited = self._store.current.with_delta(
            {"mood": -task.cost.mood, "energy": -task.cost.energy}
        )
        self._economy.credit_coins(coins, "auto_work")
        self._economy.credit_experience(exp, "auto_work")

        duration_hours = max(0.0, now - task.start_time) / MS_PER_HOUR
        record = AutoWorkHistoryRecord(
            id=str(uuid.uuid4()),
            task_id=task.id,
            tier=task.tier,
            start_time=task.start_time,
            end_time=now,
            duration_hours=duration_hours,
            reward_coins=coins,
            reward_experience=exp,
            mood_consumed=task.cost.mood,
            energy_consumed=task.cost.energy,
            intimacy_bonus=bonus,
        )
        self._history.append(record)

        attributes = self._store.replace(debited)
        self._completed.append(record)
        day = _day_key(now)
        self._hours_by_day[day] = self._hours_by_day.get(day, 0.0) + duration_hours

        LOGGER.info(
            "Work completed: +%d coins, +%d exp, -%s mood, -%s energy",
            coins,
            exp,
            task.cost.mood,
            task.cost.energy,
        )
        self._structured_logger.log_work_event(
            "completed",
            task.id,
            {"coins": coins, "experience": exp, "duration_hours": round(duration_hours, 3)},
        )
        return WorkOutcome(success=True, task=task, record=record, attributes=attributes)

    def _fire(self, task_id: str, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                LOGGER.debug("Ignoring stale completion for %s", task_id)
                return
            self._handle = None
            self.complete(task_id)

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _conflict(self, action: str, task_id: Optional[str], reason: str) -> None:
        conflict = TaskStateConflict(action, task_id, reason)
        LOGGER.warning("%s", conflict)

    def _publish(self, event_type: EventType, data: Any) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event_type, data)
