"""Composition root that drives the pet-care engine on an asyncio loop.

Builds one :class:`EngagementCoordinator` from environment configuration,
wires the in-memory collaborators and ticks it on a fixed interval until
SIGINT/SIGTERM. Alerts and proactive requests are written to the log; a real
display layer would subscribe to the same event bus.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Any

from petcare.collaborators import InMemoryEconomyLedger, InMemoryHistoryLog, InMemoryStateStore
from petcare.config import EngineConfig
from petcare.constants import DEFAULT_TICK_SECONDS
from petcare.coordinator import EngagementCoordinator
from petcare.event_bus import EventBus, EventType

LOGGER = logging.getLogger(__name__)


def load_env_file(path: str) -> None:
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as handle:
        for raw_line in handle:
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip())


def build_coordinator(loop: asyncio.AbstractEventLoop, config: EngineConfig) -> EngagementCoordinator:
    """Wire the engine with in-memory collaborators and the loop as its timer."""
    economy = InMemoryEconomyLedger()
    event_bus = EventBus()

    def on_alert(payload: Any) -> None:
        LOGGER.info("[ALERT p%s] %s", payload.priority, payload.message)

    def on_request(request: Any) -> None:
        LOGGER.info("[REQUEST %s u=%s] %s", request.type.value, request.urgency, request.message)

    def on_work(data: Any) -> None:
        LOGGER.info("[WORK] %s", data)

    event_bus.subscribe(EventType.ALERT_RAISED, on_alert)
    event_bus.subscribe(EventType.PROACTIVE_REQUEST, on_request)
    for event_type in (EventType.WORK_STARTED, EventType.WORK_COMPLETED, EventType.WORK_FAILED):
        event_bus.subscribe(event_type, on_work)

    return EngagementCoordinator(
        config=config,
        state_store=InMemoryStateStore(),
        economy=economy,
        history=InMemoryHistoryLog(),
        timer=loop,
        event_bus=event_bus,
        experience_source=lambda: economy.experience,
    )


async def run(coordinator: EngagementCoordinator, tick_seconds: float, stop: asyncio.Event) -> None:
    coordinator.load_state()
    while not stop.is_set():
        result = coordinator.tick()
        for warning in result.warnings:
            LOGGER.warning(warning)
        LOGGER.debug(coordinator.get_status_report().summary)
        try:
            await asyncio.wait_for(stop.wait(), timeout=tick_seconds)
        except asyncio.TimeoutError:
            pass
    coordinator.cancel_work()
    coordinator.save_state()
    LOGGER.info("Engine stopped; stats: %s", coordinator.metrics.get_stats())


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    load_env_file(os.path.join(os.path.dirname(__file__), "petcare.env"))

    config = EngineConfig.from_env()
    tick_seconds = max(1.0, float(os.getenv("PETCARE_TICK_SECONDS", str(DEFAULT_TICK_SECONDS))))

    loop = asyncio.get_running_loop()
    coordinator = build_coordinator(loop, config)
    stop = asyncio.Event()

    def shutdown_handler(sig, frame):
        LOGGER.info("Shutdown signal received (%s)", sig)
        loop.call_soon_threadsafe(stop.set)

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)
    await run(coordinator, tick_seconds, stop)


if __name__ == "__main__":
    asyncio.run(main())
