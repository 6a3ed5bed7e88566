"""Per-run bookkeeping for the WorkflowExecutor.

One ExecutionState exists per ``execute`` call and is never shared, so no
locking is needed.  It owns the TemplateContext the steps read from and the
WorkflowExecution record returned to the caller.
"""

import copy
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from stepflow.types import (
    ExecutionMetrics,
    StepExecution,
    StepResult,
    StepStatus,
    TemplateContext,
    WorkflowExecution,
    WorkflowStep,
)

# metadata key reported by handlers -> ExecutionMetrics field
METRIC_COUNTERS = {
    "llm_call_count": "llm_call_count",
    "retrieval_count": "retrieval_count",
    "api_call_count": "api_call_count",
    "tokens_used": "total_tokens_used",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def accumulate_metrics(metrics: ExecutionMetrics, metadata: dict[str, Any]) -> None:
    """Add a step's numeric metadata counters to the run totals."""
    for key, field in METRIC_COUNTERS.items():
        value = metadata.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            setattr(metrics, field, getattr(metrics, field) + int(value))


class ExecutionState:
    """Mutable state of one workflow run."""

    def __init__(
        self,
        execution: WorkflowExecution,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.execution = execution
        self._clock = clock
        self._started = clock()
        self.template_context = TemplateContext(
            input=copy.deepcopy(execution.input),
            context={
                "workflow_id": execution.workflow_id,
                "execution_id": execution.id,
                "tenant_id": execution.tenant_id,
            },
        )
        self.current_step_id: Optional[str] = None
        self.last_output: Any = None
        self._open: Optional[tuple[StepExecution, float]] = None

    # ── Clock ──────────────────────────────────────────────────────────────

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._started) * 1000)

    # ── Step lifecycle ─────────────────────────────────────────────────────

    @property
    def steps_executed(self) -> int:
        return self.execution.metrics.steps_executed

    def start_step(self, step: WorkflowStep) -> tuple[StepExecution, float]:
        """Append a running StepExecution; returns it with its clock reading."""
        record = StepExecution(
            step_id=step.id,
            step_type=step.type,
            status=StepStatus.RUNNING,
            started_at=utcnow(),
        )
        self.execution.step_executions.append(record)
        self.execution.metrics.steps_executed += 1
        self.current_step_id = step.id
        started = self._clock()
        self._open = (record, started)
        return record, started

    def complete_step(
        self, record: StepExecution, started: float, result: StepResult, attempts: int
    ) -> None:
        record.status = StepStatus.COMPLETED
        record.output = result.output
        self._close(record, started, attempts)
        self.template_context.steps[record.step_id] = {
            "output": result.output,
            "metadata": dict(result.metadata),
        }
        accumulate_metrics(self.execution.metrics, result.metadata)
        self.last_output = result.output

    def fail_step(self, record: StepExecution, started: float, message: str, attempts: int) -> None:
        record.status = StepStatus.FAILED
        record.error = message
        self._close(record, started, attempts)
        self.execution.metrics.errors += 1

    def abandon_step(self, message: str) -> Optional[StepExecution]:
        """Fail the step left running when the run stops mid-step; None if there is none."""
        if self._open is None:
            return None
        record, started = self._open
        if record.status != StepStatus.RUNNING:
            return None
        self.fail_step(record, started, message, 1)
        return record

    def _close(self, record: StepExecution, started: float, attempts: int) -> None:
        record.completed_at = utcnow()
        record.duration_ms = int((self._clock() - started) * 1000)
        record.retry_count = max(attempts - 1, 0)
        self.execution.metrics.retries += record.retry_count

    # ── Queries ────────────────────────────────────────────────────────────

    def handler_view(self) -> TemplateContext:
        """Deep copy of the template context for one handler attempt."""
        return self.template_context.model_copy(deep=True)

