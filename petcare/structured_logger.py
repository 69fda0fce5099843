"""Structured logging with JSON-formatted engine events."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any, Dict, Optional


class StructuredLogger:
    """Logger that emits one JSON line per engine event."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _emit(self, level: int, event: Dict[str, Any]) -> None:
        event["timestamp"] = datetime.now(UTC).isoformat()
        self.logger.log(level, json.dumps(event, ensure_ascii=False, default=str))

    def log_alert(
        self,
        rule_id: str,
        priority: int,
        message: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log a threshold alert that won arbitration."""
        event: Dict[str, Any] = {
            "event": "alert_fired",
            "rule_id": rule_id,
            "priority": int(priority),
            "message": message,
        }
        if attributes:
            event["attributes"] = attributes
        self._emit(logging.INFO, event)

    def log_proactive_request(
        self,
        request_type: str,
        urgency: int,
        decline_count: int,
        interval_ms: Optional[float] = None,
    ) -> None:
        event: Dict[str, Any] = {
            "event": "proactive_request",
            "request_type": request_type,
            "urgency": urgency,
            "decline_count": decline_count,
        }
        if interval_ms is not None:
            event["interval_ms"] = round(interval_ms)
        self._emit(logging.INFO, event)

    def log_work_event(
        self,
        action: str,
        task_id: Optional[str],
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an auto-work state transition (started/completed/cancelled/failed)."""
        event: Dict[str, Any] = {
            "event": "work_event",
            "action": action,
            "task_id": task_id,
        }
        if details:
            event.update(details)
        self._emit(logging.INFO, event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an error with context."""
        event: Dict[str, Any] = {
            "event": "error",
            "error_type": error_type,
            "error_message": error_message,
        }
        if context:
            event["context"] = context
        self._emit(logging.ERROR, event)
