"""Engine counters and tick timing for monitoring."""

from collections import deque
from typing import Any, Deque, Dict


class EngineMetrics:
    """Counters and recent tick durations for one engine instance."""

    def __init__(self) -> None:
        self.tick_times: Deque[float] = deque(maxlen=100)
        self.ticks: int = 0
        self.alerts: int = 0
        self.proactive_requests: int = 0
        self.work_sessions: int = 0
        self.errors: int = 0

    def record_tick(self, duration: float) -> None:
        """Record a tick duration in seconds."""
        self.tick_times.append(duration)
        self.ticks += 1

    def record_alert(self) -> None:
        self.alerts += 1

    def record_proactive_request(self) -> None:
        self.proactive_requests += 1

    def record_work_session(self) -> None:
        self.work_sessions += 1

    def record_error(self) -> None:
        self.errors += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        return {
            "avg_tick_time_ms": (
                sum(self.tick_times) / len(self.tick_times) * 1000
                if self.tick_times else 0
            ),
            "total_ticks": self.ticks,
            "total_alerts": self.alerts,
            "total_proactive_requests": self.proactive_requests,
            "total_work_sessions": self.work_sessions,
            "total_errors": self.errors,
        }
