"""All shared types, enums, and type aliases. Everything imports from here."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ── Enums ──────────────────────────────────────────────────────────────

class StepType(str, Enum):
    """Built-in step types. The registry accepts any string; these are the shipped ones."""
    RETRIEVAL = "retrieval"
    COMPLETION = "completion"
    CONDITION = "condition"
    HTTP_CALL = "http_call"

class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"

class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATUSES = frozenset({
    ExecutionStatus.COMPLETED,
    ExecutionStatus.FAILED,
    ExecutionStatus.TIMEOUT,
    ExecutionStatus.CANCELLED,
})


class WireModel(BaseModel):
    """Base for models read from workflow documents: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Workflow definition ────────────────────────────────────────────────

class RetryPolicy(WireModel):
    """Attempts and linear backoff for one step."""
    max_attempts: int = Field(default=1, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)   # sleep = base_delay_ms * attempt

class WorkflowStep(WireModel):
    """One unit of work. ``params`` is opaque to the engine and validated by the handler."""
    id: str
    type: str                            # selects the handler in the StepRegistry
    label: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    next_step_id: Optional[str] = None   # linear edge
    on_success: Optional[str] = None     # takes precedence over next_step_id
    on_failure: Optional[str] = None
    retry: Optional[RetryPolicy] = None
    timeout_ms: Optional[int] = Field(default=None, gt=0)   # per attempt

class Workflow(WireModel):
    """Immutable workflow definition. Structural invariants are checked by WorkflowValidator."""
    id: str = Field(default_factory=lambda: f"wf_{uuid.uuid4().hex[:12]}")
    version: int = Field(default=1, ge=1)
    name: str = ""
    entry_step_id: str
    steps: list[WorkflowStep] = Field(default_factory=list)
    max_steps: int = Field(default=100, ge=1)
    max_execution_duration_ms: Optional[int] = Field(default=None, gt=0)

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        """Return the first step with this id, or None."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


# ── Step handler envelope ──────────────────────────────────────────────

class StepError(BaseModel):
    """Why a handler reported failure."""
    message: str
    code: Optional[str] = None
    recoverable: bool = False           # False stops retries immediately

class StepResult(BaseModel):
    """Uniform result returned by every StepHandler."""
    success: bool
    output: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)   # duration_ms + side-effect counters
    error: Optional[StepError] = None

class TemplateContext(BaseModel):
    """Evaluation state of one execution: ``input``, ``steps`` and ``context`` roots."""
    input: dict[str, Any] = Field(default_factory=dict)
    steps: dict[str, dict[str, Any]] = Field(default_factory=dict)   # step id -> {output, metadata}
    context: dict[str, Any] = Field(default_factory=dict)

    def as_mapping(self) -> dict[str, Any]:
        """Live view of the three roots, for path resolution."""
        return {"input": self.input, "steps": self.steps, "context": self.context}


# ── Execution records ──────────────────────────────────────────────────

class StepExecution(BaseModel):
    """Record of one attempted step (all of its retries)."""
    step_id: str
    step_type: str
    status: StepStatus = StepStatus.PENDING
    input: Optional[dict[str, Any]] = None    # resolved params
    output: Any = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    retry_count: int = 0

class ExecutionMetrics(BaseModel):
    steps_executed: int = 0
    llm_call_count: int = 0
    retrieval_count: int = 0
    api_call_count: int = 0
    total_tokens_used: int = 0
    retries: int = 0
    errors: int = 0

class ExecutionError(BaseModel):
    """Terminal error of a run."""
    message: str
    code: str
    step_id: Optional[str] = None

class WorkflowExecution(BaseModel):
    """Mutable record of one run. Read-only history once status is terminal."""
    id: str = Field(default_factory=lambda: f"exec_{uuid.uuid4().hex[:12]}")
    workflow_id: str
    workflow_version: int = 1
    tenant_id: str
    input: dict[str, Any] = Field(default_factory=dict)
    status: ExecutionStatus = ExecutionStatus.PENDING
    step_executions: list[StepExecution] = Field(default_factory=list)
    metrics: ExecutionMetrics = Field(default_factory=ExecutionMetrics)
    output: Any = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    error: Optional[ExecutionError] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def executed_step_ids(self) -> list[str]:
        return [se.step_id for se in self.step_executions]


# ── Validation ─────────────────────────────────────────────────────────

class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
