"""Sink protocol for workflow execution events.

The executor reports run start/end, step start/end, retries and failures to a
sink.  Implement this protocol to observe executions without modifying the
engine.

Usage:
    class MySink(BaseSink):
        def error(self, message, **fields):
            page_someone(message, fields)

    executor = WorkflowExecutor(registry, sink=MySink())
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ExecutionSink(Protocol):
    """Protocol defining the three emission levels.

    ``message`` is a short human-readable event description; ``fields`` are
    structured values (``event``, ``execution_id``, ``step_id``, ...).
    Sinks are called synchronously and in order; the executor logs and
    ignores any exception a sink raises.
    """

    def info(self, message: str, **fields: Any) -> None:
        ...

    def warn(self, message: str, **fields: Any) -> None:
        ...

    def error(self, message: str, **fields: Any) -> None:
        ...


class BaseSink:
    """Concrete base with no-op implementations of all levels.

    Subclass this instead of implementing the Protocol directly
    to avoid implementing every method.
    """

    def info(self, message: str, **fields: Any) -> None:
        pass

    def warn(self, message: str, **fields: Any) -> None:
        pass

    def error(self, message: str, **fields: Any) -> None:
        pass


class NullSink(BaseSink):
    """Discards every event."""


class RecordingSink(BaseSink):
    """Keeps every event in memory as ``(level, message, fields)`` tuples."""

    def __init__(self):
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def info(self, message: str, **fields: Any) -> None:
        self.events.append(("info", message, fields))

    def warn(self, message: str, **fields: Any) -> None:
        self.events.append(("warn", message, fields))

    def error(self, message: str, **fields: Any) -> None:
        self.events.append(("error", message, fields))

    def named(self, event: str) -> list[dict[str, Any]]:
        """Fields of every recorded event whose ``event`` field equals ``event``."""
        return [fields for _, _, fields in self.events if fields.get("event") == event]

    def clear(self) -> None:
        self.events.clear()
