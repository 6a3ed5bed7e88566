"""Tests for per-run ExecutionState bookkeeping."""

from stepflow.types import StepResult, StepStatus, WorkflowExecution, WorkflowStep
from stepflow.workflows.context import ExecutionState, accumulate_metrics

from tests.helpers import FakeClock


def _state(clock=None):
    execution = WorkflowExecution(workflow_id="wf-1", tenant_id="tenant-a", input={"q": "hi"})
    return ExecutionState(execution, clock=clock or FakeClock())


def test_context_is_seeded_from_execution():
    state = _state()
    assert state.template_context.input == {"q": "hi"}
    assert state.template_context.context["tenant_id"] == "tenant-a"
    assert state.template_context.context["execution_id"] == state.execution.id


def test_abandon_step_fails_running_record():
    clock = FakeClock()
    state = _state(clock)
    record, _ = state.start_step(WorkflowStep(id="s1", type="echo"))
    clock.advance_ms(40)

    assert state.abandon_step("task cancelled") is record
    assert record.status == StepStatus.FAILED
    assert record.error == "task cancelled"
    assert record.duration_ms == 40
    assert record.completed_at is not None
    assert state.execution.metrics.errors == 1


def test_abandon_step_ignores_closed_records():
    state = _state()
    assert state.abandon_step("nothing running") is None

    record, started = state.start_step(WorkflowStep(id="s1", type="echo"))
    state.complete_step(record, started, StepResult(success=True, output="ok"), attempts=1)
    assert state.abandon_step("late") is None
    assert record.status == StepStatus.COMPLETED


def test_accumulate_metrics_skips_non_numeric():
    state = _state()
    accumulate_metrics(
        state.execution.metrics,
        {"llm_call_count": 1, "tokens_used": 42, "retrieval_count": True, "api_call_count": "2"},
    )
    metrics = state.execution.metrics
    assert metrics.llm_call_count == 1
    assert metrics.total_tokens_used == 42
    assert metrics.retrieval_count == 0
    assert metrics.api_call_count == 0
