"""Narrow interfaces to the engine's external collaborators.

The engine only talks to persistence, the coin/experience economy, the work
history and the clock through these protocols. The in-memory implementations
are what the composition root wires by default and what tests build on.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Protocol, Tuple

from petcare.attributes import CareAttributes
from petcare.constants import DEFAULT_HISTORY_LIMIT

LOGGER = logging.getLogger(__name__)


class Clock(Protocol):
    def now_ms(self) -> float:
        ...


class SystemClock:
    """Wall-clock time in epoch milliseconds."""

    def now_ms(self) -> float:
        return time.time() * 1000


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Timer(Protocol):
    """Anything with ``call_later``; an ``asyncio`` event loop qualifies."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class PersistentStateStore(Protocol):
    def load(self) -> Optional[CareAttributes]:
        ...

    def save(self, attributes: CareAttributes) -> None:
        ...


class EconomyLedger(Protocol):
    def credit_coins(self, amount: int, reason: str) -> None:
        ...

    def credit_experience(self, amount: int, reason: str) -> None:
        ...


class HistoryLog(Protocol):
    def append(self, record: Any) -> None:
        ...


class InMemoryStateStore:
    """Keeps the last saved snapshot as a plain dict record."""

    def __init__(self, initial: Optional[CareAttributes] = None) -> None:
        self._record = initial.to_dict() if initial is not None else None
        self.save_count = 0

    def load(self) -> Optional[CareAttributes]:
        if self._record is None:
            return None
        return CareAttributes.from_dict(self._record)

    def save(self, attributes: CareAttributes) -> None:
        self._record = attributes.to_dict()
        self.save_count += 1


class InMemoryEconomyLedger:
    def __init__(self) -> None:
        self.coins = 0
        self.experience = 0
        self.transactions: List[Tuple[str, int, str]] = []

    def credit_coins(self, amount: int, reason: str) -> None:
        self.coins += amount
        self.transactions.append(("coins", amount, reason))

    def credit_experience(self, amount: int, reason: str) -> None:
        self.experience += amount
        self.transactions.append(("experience", amount, reason))


class InMemoryHistoryLog:
    """Append-only, bounded record of completed work sessions."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.records: Deque[Any] = deque(maxlen=limit)

    def append(self, record: Any) -> None:
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)
