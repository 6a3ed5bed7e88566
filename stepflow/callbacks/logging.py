"""Structured JSON logging sink for workflow execution events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from stepflow.callbacks.base import BaseSink

logger = logging.getLogger("stepflow.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _clip(value: Any) -> Any:
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    return str(value)[:200]


class LoggingSink(BaseSink):
    """Emits one JSON log line per execution event.

    Each log line is a self-contained JSON object with:
      - event: event type name (``step_completed``, ``step_retry``, ...)
      - ts: ISO-8601 UTC timestamp
      - message: the human-readable description
      - the structured fields passed by the executor (long values clipped)

    Log level: INFO / WARNING / ERROR matching the sink method.
    Logger name: stepflow.audit (configure in your logging setup)
    """

    def __init__(self, log: logging.Logger = None):
        self._logger = log or logger

    def _emit(self, level: int, message: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        record = {
            "event": fields.get("event", "message"),
            "ts": _now(),
            "message": message,
        }
        record.update({k: _clip(v) for k, v in fields.items() if k != "event"})
        self._logger.log(level, json.dumps(record))

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, fields)

    def warn(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, fields)
