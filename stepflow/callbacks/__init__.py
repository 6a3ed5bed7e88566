from stepflow.callbacks.base import BaseSink, ExecutionSink, NullSink, RecordingSink
from stepflow.callbacks.logging import LoggingSink

__all__ = ["ExecutionSink", "BaseSink", "NullSink", "RecordingSink", "LoggingSink"]
