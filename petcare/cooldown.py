"""Per-key cooldown tracking shared by interactions and threshold alerts."""

from __future__ import annotations

import logging
from typing import Dict, Optional

LOGGER = logging.getLogger(__name__)


class CooldownGate:
    """Remembers when each key last fired, in epoch milliseconds.

    One instance is owned per pet/session. Entries are created lazily by
    :meth:`record` and only removed by the reset helpers.
    """

    def __init__(self) -> None:
        self._last_trigger: Dict[str, float] = {}

    def last_trigger(self, key: str) -> Optional[float]:
        return self._last_trigger.get(key)

    def is_ready(self, key: str, now: float, cooldown_ms: float) -> bool:
        """Return True if ``key`` never fired or its cooldown has fully elapsed."""
        last = self._last_trigger.get(key)
        if last is None:
            return True
        return now - last >= cooldown_ms

    def remaining(self, key: str, now: float, cooldown_ms: float) -> float:
        """Milliseconds until ``key`` is ready again (0 when ready)."""
        last = self._last_trigger.get(key)
        if last is None:
            return 0
        return max(0, cooldown_ms - (now - last))

    def record(self, key: str, now: float) -> None:
        self._last_trigger[key] = now
        LOGGER.debug("Cooldown recorded for %s at %s", key, now)

    def reset(self, key: str) -> None:
        self._last_trigger.pop(key, None)

    def reset_all(self) -> None:
        self._last_trigger.clear()

    def snapshot(self) -> Dict[str, float]:
        return dict(self._last_trigger)
