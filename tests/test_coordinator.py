"""Tests for the engagement coordinator tick and its collaborators."""

from unittest import TestCase

import pytest

from petcare.alerts import AlertPriority
from petcare.attributes import AttributeStore, CareAttributes
from petcare.auto_work import WorkState
from petcare.collaborators import InMemoryEconomyLedger, InMemoryHistoryLog, InMemoryStateStore
from petcare.config import AutoWorkConfig, EngineConfig, ProactiveRequestConfig
from petcare.constants import MS_PER_HOUR, MS_PER_MINUTE
from petcare.coordinator import EngagementCoordinator
from petcare.errors import PersistenceFailure
from petcare.event_bus import EventBus, EventType
from petcare.urgency import RequestType
from tests.fixtures.collaborators import FailingStateStore, RecordingBus
from tests.fixtures.timing import FakeClock, ManualTimer, SequenceRandom


class CoordinatorTestCase(TestCase):
    """Wires a coordinator against a fake clock and manual timer."""

    def setUp(self):
        self.clock = FakeClock()
        self.timer = ManualTimer(self.clock)
        self.economy = InMemoryEconomyLedger()
        self.history = InMemoryHistoryLog()
        self.event_bus = EventBus()
        self.events = RecordingBus(self.event_bus)

    def make_coordinator(self, attributes=None, config=None, state_store=None):
        return EngagementCoordinator(
            config=config or EngineConfig(),
            store=AttributeStore(attributes),
            clock=self.clock,
            state_store=state_store,
            economy=self.economy,
            history=self.history,
            timer=self.timer,
            rng=SequenceRandom([0.1, 0.5]),
            event_bus=self.event_bus,
        )


class TestTick(CoordinatorTestCase):
    """Tests for the per-tick decision order."""

    def test_alert_pre_empts_proactive_request(self):
        """Test that alerts pre-empt proactive requests."""
        coordinator = self.make_coordinator(
            CareAttributes(satiety=14, energy=50, mood=50, boredom=10)
        )

        first = coordinator.tick(elapsed_ms=0)
        assert first.alert_rule_id == "satiety_critical"
        assert first.alert.priority == AlertPriority.URGENT
        assert first.proactive_request is None

        self.clock.advance(1000)
        second = coordinator.tick()
        assert second.alert_rule_id == "satiety_low"
        assert second.proactive_request is None

        self.clock.advance(1000)
        third = coordinator.tick()
        assert third.alert is None
        assert third.proactive_request is not None
        assert third.proactive_request.type is RequestType.HUNGRY
        assert third.proactive_request.suggested_interaction == "feed"
        assert coordinator.last_request_time == self.clock.now_ms()

        self.clock.advance(1000)
        fourth = coordinator.tick()
        assert fourth.alert is None
        assert fourth.proactive_request is None

        stats = coordinator.metrics.get_stats()
        assert stats["total_ticks"] == 4
        assert stats["total_alerts"] == 2
        assert stats["total_proactive_requests"] == 1
        assert len(self.events.of_type(EventType.ALERT_RAISED)) == 2
        assert len(self.events.of_type(EventType.PROACTIVE_REQUEST)) == 1

    def test_decay_uses_time_since_last_tick(self):
        """Test decay by the time since the last tick."""
        coordinator = self.make_coordinator()
        self.clock.advance(MS_PER_HOUR)

        result = coordinator.tick()
        assert result.attributes.satiety == pytest.approx(70)
        assert result.attributes.boredom == pytest.approx(29)
        assert coordinator.attributes == result.attributes

    def test_healthy_pet_with_proactive_disabled_is_quiet(self):
        """Test that a healthy pet stays quiet."""
        config = EngineConfig(proactive=ProactiveRequestConfig(enabled=False))
        result = self.make_coordinator(config=config).tick(elapsed_ms=0)

        assert result.alert is None
        assert result.proactive_request is None
        assert result.work_started is None
        assert result.warnings == []

    def test_idle_pet_starts_working(self):
        """Test that an idle pet starts working."""
        config = EngineConfig(
            auto_work=AutoWorkConfig(enabled=True),
            proactive=ProactiveRequestConfig(enabled=False),
        )
        coordinator = self.make_coordinator(config=config)
        self.clock.advance(31 * MS_PER_MINUTE)

        result = coordinator.tick(elapsed_ms=0)
        assert result.work_started is not None
        assert coordinator.get_work_status().state is WorkState.WORKING

    def test_alert_blocks_auto_work(self):
        """Test that an alert blocks auto work."""
        config = EngineConfig(
            auto_work=AutoWorkConfig(enabled=True),
            proactive=ProactiveRequestConfig(enabled=False),
        )
        coordinator = self.make_coordinator(CareAttributes(satiety=10), config=config)
        self.clock.advance(31 * MS_PER_MINUTE)

        result = coordinator.tick(elapsed_ms=0)
        assert result.alert_rule_id == "satiety_critical"
        assert result.work_started is None

    def test_overdue_work_completes_without_timer(self):
        """Test that a tick finishes overdue work when no timer is wired."""
        config = EngineConfig(
            auto_work=AutoWorkConfig(enabled=True, daily_max_work_hours=0.5),
            proactive=ProactiveRequestConfig(enabled=False),
        )
        coordinator = EngagementCoordinator(
            config=config,
            clock=self.clock,
            economy=self.economy,
            history=self.history,
            rng=SequenceRandom([0.1, 0.5]),
            event_bus=self.event_bus,
        )
        self.clock.advance(31 * MS_PER_MINUTE)
        task = coordinator.tick(elapsed_ms=0).work_started
        assert task is not None

        self.clock.advance(MS_PER_HOUR)
        result = coordinator.tick(elapsed_ms=0)

        assert result.work_completed is not None
        assert result.work_completed.success
        assert result.work_completed.record.end_time == task.end_time
        assert result.work_started is None
        status = coordinator.get_work_status()
        assert status.state is WorkState.IDLE
        assert status.today_work_hours == pytest.approx(0.5)
        assert self.economy.coins == 10
        assert coordinator.metrics.work_sessions == 1

        self.clock.advance(MS_PER_MINUTE)
        assert coordinator.tick(elapsed_ms=0).work_completed is None
        assert self.economy.coins == 10

    def test_tick_and_late_timer_credit_once(self):
        """Test that a timer firing after the tick finished the task is ignored."""
        coordinator = self.make_coordinator()
        coordinator.start_work(force=True)

        self.clock.advance(31 * MS_PER_MINUTE)
        assert coordinator.tick(elapsed_ms=0).work_completed.success
        self.timer.advance(60 * 60)

        assert self.economy.coins == 10
        assert len(self.history) == 1

    def test_work_in_progress_is_left_running(self):
        """Test that a tick before the due time does not finish the task."""
        coordinator = self.make_coordinator()
        coordinator.start_work(force=True)
        self.clock.advance(10 * MS_PER_MINUTE)

        result = coordinator.tick(elapsed_ms=0)
        assert result.work_completed is None
        assert coordinator.get_work_status().state is WorkState.WORKING

    def test_reset_cooldowns(self):
        """Test resetting the cooldowns."""
        coordinator = self.make_coordinator(CareAttributes(boredom=90))
        assert coordinator.tick(elapsed_ms=0).alert_rule_id == "boredom_high"
        assert coordinator.tick(elapsed_ms=0).alert is None

        coordinator.reset_cooldowns()
        assert coordinator.tick(elapsed_ms=0).alert_rule_id == "boredom_high"


class TestInteractions(CoordinatorTestCase):
    """Tests for interaction cooldowns and side effects."""

    def test_interaction_readiness(self):
        """Test interaction readiness."""
        coordinator = self.make_coordinator()
        now = self.clock.now_ms()
        coordinator.record_interaction("feed", now)

        waiting = coordinator.is_interaction_ready("feed", now + 60_000)
        assert not waiting.ready
        assert waiting.remaining_ms == 60_000

        ready = coordinator.is_interaction_ready("feed", now + 120_000)
        assert ready.ready
        assert ready.remaining_ms == 0

        assert coordinator.is_interaction_ready("play", now + 1).ready
        assert coordinator.is_interaction_ready("dance", now + 1).ready

    def test_interaction_keys_do_not_collide_with_alerts(self):
        """Test that interaction keys do not collide with alert keys."""
        coordinator = self.make_coordinator()
        coordinator.record_interaction("feed")
        assert "satiety_low" not in coordinator.cooldowns.snapshot()
        assert "interaction:feed" in coordinator.cooldowns.snapshot()

    def test_effects_applied(self):
        """Test applying interaction effects."""
        coordinator = self.make_coordinator()
        attrs = coordinator.record_interaction("feed", effects={"satiety": 15, "mood": 30})

        assert attrs.satiety == 93
        assert attrs.mood == 100
        assert attrs.last_action == "feed"
        assert len(self.events.of_type(EventType.INTERACTION_RECORDED)) == 1

    def test_interaction_resets_idle_clock(self):
        """Test that an interaction resets the idle clock."""
        config = EngineConfig(
            auto_work=AutoWorkConfig(enabled=True),
            proactive=ProactiveRequestConfig(enabled=False),
        )
        coordinator = self.make_coordinator(config=config)
        self.clock.advance(29 * MS_PER_MINUTE)
        coordinator.record_interaction("pet")
        self.clock.advance(5 * MS_PER_MINUTE)

        assert coordinator.last_interaction_time == self.clock.now_ms() - 5 * MS_PER_MINUTE
        assert coordinator.tick(elapsed_ms=0).work_started is None

    def test_interaction_interrupts_work(self):
        """Test that an interaction interrupts work."""
        coordinator = self.make_coordinator()
        assert coordinator.start_work(force=True) is not None

        coordinator.record_interaction("pet")
        status = coordinator.get_work_status()
        assert status.state is WorkState.IDLE
        assert status.task is None
        assert len(self.events.of_type(EventType.WORK_CANCELLED)) == 1

        self.timer.advance(3 * 60 * 60)
        assert self.economy.coins == 0


class TestWork(CoordinatorTestCase):
    """Tests for the coordinator's auto-work surface."""

    def test_start_work_respects_entry_guard(self):
        """Test that start_work respects the entry guard."""
        config = EngineConfig(auto_work=AutoWorkConfig(enabled=True))
        coordinator = self.make_coordinator(config=config)
        assert coordinator.start_work() is None

    def test_work_status_reports_remaining_time(self):
        """Test the remaining time in the work status."""
        coordinator = self.make_coordinator()
        now = self.clock.now_ms()
        task = coordinator.start_work(now=now, force=True)

        status = coordinator.get_work_status(now + 10 * MS_PER_MINUTE)
        assert status.task is task
        assert status.remaining_ms == pytest.approx(20 * MS_PER_MINUTE)
        assert status.today_work_hours == 0

    def test_timer_completion_saves_state(self):
        """Test that timer completion saves state."""
        state_store = InMemoryStateStore()
        coordinator = self.make_coordinator(state_store=state_store)
        coordinator.start_work(force=True)

        self.timer.advance(30 * 60)
        assert self.economy.coins == 10
        assert state_store.save_count == 1
        assert state_store.load().mood == 74
        assert coordinator.metrics.work_sessions == 1
        assert coordinator.get_work_status().today_work_hours == pytest.approx(0.5)

    def test_cancel_work(self):
        """Test cancelling work."""
        coordinator = self.make_coordinator()
        coordinator.start_work(force=True)
        assert coordinator.cancel_work()
        assert not coordinator.cancel_work()


class TestStatusReport(CoordinatorTestCase):
    """Tests for the human-readable status report."""

    def test_happy_pet(self):
        """Test the report for a happy pet."""
        report = self.make_coordinator().get_status_report()
        assert report.emotion == "happy"
        assert report.warnings == []
        assert report.needs == []
        assert report.summary == (
            "Status: satiety 78 | energy 80 | hygiene 76 | mood 82 | boredom 25"
        )

    def test_one_warning(self):
        """Test the report with one warning."""
        report = self.make_coordinator(CareAttributes(satiety=30)).get_status_report()
        assert report.emotion == "confused"
        assert len(report.warnings) == 1

    def test_several_warnings(self):
        """Test the report with several warnings."""
        report = self.make_coordinator(CareAttributes(satiety=30, hygiene=30)).get_status_report()
        assert report.emotion == "sad"
        assert len(report.warnings) == 2

    def test_urgent_need_makes_pet_sad(self):
        """Test that a critical gauge outweighs a single soft warning."""
        coordinator = self.make_coordinator(CareAttributes(satiety=10))
        report = coordinator.get_status_report()

        assert report.emotion == "sad"
        assert len(report.warnings) == 1
        assert coordinator.arbiter.get_rule("satiety_critical").payload.message in report.needs
        assert coordinator.arbiter.get_rule("satiety_low").payload.message in report.needs

    def test_urgent_need_without_soft_warnings(self):
        """Test that low mood alone is reported as a need and makes the pet sad."""
        coordinator = self.make_coordinator(CareAttributes(mood=10))
        report = coordinator.get_status_report()

        assert report.warnings == []
        assert report.emotion == "sad"
        assert coordinator.arbiter.get_rule("mood_critical").payload.message in report.needs


class TestPersistence(CoordinatorTestCase):
    """Persistence failures degrade to warnings; memory stays authoritative."""

    def test_save_failure_becomes_warning(self):
        """Test that a save failure becomes a warning."""
        coordinator = self.make_coordinator(state_store=FailingStateStore())

        with self.assertLogs("petcare.coordinator", level="WARNING"):
            result = coordinator.tick(elapsed_ms=MS_PER_HOUR)

        assert result.warnings
        assert result.attributes.satiety == pytest.approx(70)
        assert coordinator.metrics.errors == 1
        failures = self.events.of_type(EventType.PERSISTENCE_FAILED)
        assert len(failures) == 1
        assert isinstance(failures[0], PersistenceFailure)
        assert failures[0].operation == "save"
        assert isinstance(failures[0].__cause__, OSError)

    def test_successful_save(self):
        """Test a successful save."""
        state_store = InMemoryStateStore()
        coordinator = self.make_coordinator(state_store=state_store)
        result = coordinator.tick(elapsed_ms=0)
        assert result.warnings == []
        assert state_store.save_count == 1

    def test_load_restores_snapshot(self):
        """Test restoring a persisted snapshot."""
        coordinator = self.make_coordinator(
            state_store=InMemoryStateStore(CareAttributes(satiety=50, last_action="feed"))
        )
        assert coordinator.load_state()
        assert coordinator.attributes.satiety == 50
        assert coordinator.attributes.last_action == "feed"

    def test_load_without_snapshot_keeps_defaults(self):
        """Test loading with no snapshot."""
        coordinator = self.make_coordinator(state_store=InMemoryStateStore())
        assert coordinator.load_state()
        assert coordinator.attributes == CareAttributes()

    def test_load_failure_keeps_memory(self):
        """Test that a load failure keeps memory."""
        coordinator = self.make_coordinator(
            CareAttributes(mood=60),
            state_store=FailingStateStore(CareAttributes(mood=10), fail_load=True),
        )
        with self.assertLogs("petcare.coordinator", level="WARNING"):
            assert not coordinator.load_state()
        assert coordinator.attributes.mood == 60
        failure = self.events.of_type(EventType.PERSISTENCE_FAILED)[0]
        assert failure.operation == "load"
