"""Tests for execution sinks."""

import json
import logging

import pytest

from stepflow.callbacks import BaseSink, ExecutionSink, LoggingSink, NullSink, RecordingSink
from stepflow.types import ExecutionStatus
from stepflow.workflows.executor import WorkflowExecutor

from tests.helpers import EchoHandler


def _audit_lines(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "stepflow.audit"]


@pytest.mark.parametrize("sink", [BaseSink(), NullSink(), RecordingSink(), LoggingSink()])
def test_sinks_satisfy_protocol(sink):
    assert isinstance(sink, ExecutionSink)


def test_recording_sink_keeps_order_and_levels():
    sink = RecordingSink()
    sink.info("started", event="execution_started", execution_id="e1")
    sink.warn("retrying", event="step_retry", step_id="a")
    sink.error("failed", event="step_failed", step_id="a")
    assert [level for level, _, _ in sink.events] == ["info", "warn", "error"]
    assert sink.named("step_retry") == [{"event": "step_retry", "step_id": "a"}]
    sink.clear()
    assert sink.events == []


def test_logging_sink_emits_json_line(caplog):
    caplog.set_level(logging.INFO, logger="stepflow.audit")
    LoggingSink().info("Step 'a' completed", event="step_completed", step_id="a", duration_ms=12)

    (line,) = _audit_lines(caplog)
    assert line["event"] == "step_completed"
    assert line["message"] == "Step 'a' completed"
    assert line["step_id"] == "a"
    assert line["duration_ms"] == 12
    assert line["ts"].endswith("Z")


def test_logging_sink_levels(caplog):
    caplog.set_level(logging.INFO, logger="stepflow.audit")
    sink = LoggingSink()
    sink.warn("w", event="step_retry")
    sink.error("e", event="step_failed")
    levels = [r.levelno for r in caplog.records if r.name == "stepflow.audit"]
    assert levels == [logging.WARNING, logging.ERROR]


def test_logging_sink_clips_long_values(caplog):
    caplog.set_level(logging.INFO, logger="stepflow.audit")
    LoggingSink().info("big", event="step_completed", output={"text": "x" * 1000}, ok=True, missing=None)

    (line,) = _audit_lines(caplog)
    assert len(line["output"]) == 200
    assert line["ok"] is True
    assert line["missing"] is None


def test_logging_sink_respects_level(caplog):
    caplog.set_level(logging.WARNING, logger="stepflow.audit")
    LoggingSink().info("quiet", event="step_started")
    assert _audit_lines(caplog) == []


def test_logging_sink_custom_logger(caplog):
    caplog.set_level(logging.INFO, logger="myapp.workflows")
    LoggingSink(logging.getLogger("myapp.workflows")).info("hello", event="execution_started")
    assert [r.name for r in caplog.records] == ["myapp.workflows"]


@pytest.mark.asyncio
async def test_executor_with_logging_sink(caplog, config, linear_workflow):
    caplog.set_level(logging.INFO, logger="stepflow.audit")
    from stepflow.workflows.registry import StepRegistry

    registry = StepRegistry()
    registry.register("echo", EchoHandler())
    executor = WorkflowExecutor(registry, sink=LoggingSink(), config=config)

    execution = await executor.execute(linear_workflow, "tenant-a", {})
    assert execution.status == ExecutionStatus.COMPLETED

    events = [line["event"] for line in _audit_lines(caplog)]
    assert events[0] == "execution_started"
    assert events[-1] == "execution_completed"
    assert events.count("step_completed") == 3
    assert all(line["execution_id"] == execution.id for line in _audit_lines(caplog))
