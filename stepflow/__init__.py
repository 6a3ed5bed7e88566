"""stepflow — declarative multi-step AI workflows.

Usage:
    from stepflow import WorkflowExecutor, default_registry, load_workflow
    from stepflow.services import InMemoryRetrievalService, StaticCompletionService

    registry = default_registry(retrieval=InMemoryRetrievalService(), completion=StaticCompletionService())
    execution = await WorkflowExecutor(registry).execute(load_workflow("answer.yaml"), "acme", {"question": "..."})
"""

from stepflow.types import (
    Workflow, WorkflowStep, RetryPolicy, StepType, StepResult, StepError,
    TemplateContext, WorkflowExecution, StepExecution, ExecutionMetrics,
    ExecutionError, ExecutionStatus, StepStatus, ValidationResult,
)
from stepflow.exceptions import (
    StepflowError, HandlerNotFound, ServiceError, TemplateResolutionError,
    ExpressionEvaluationError, WorkflowError, WorkflowValidationError,
    WorkflowLoadError, StepExecutionError, StepParamsError, StepTimeoutError,
    ExecutionTimeoutError, StepLimitExceeded, ExecutionCancelled,
)
from stepflow.workflows import (
    WorkflowExecutor, WorkflowValidator, WorkflowBuilder, StepRegistry,
    default_registry, parse_workflow, load_workflow, dump_workflow,
)
from stepflow.version import __version__

__all__ = [
    "Workflow", "WorkflowStep", "RetryPolicy", "StepType", "StepResult", "StepError",
    "TemplateContext", "WorkflowExecution", "StepExecution", "ExecutionMetrics",
    "ExecutionError", "ExecutionStatus", "StepStatus", "ValidationResult",
    "StepflowError", "HandlerNotFound", "ServiceError", "TemplateResolutionError",
    "ExpressionEvaluationError", "WorkflowError", "WorkflowValidationError",
    "WorkflowLoadError", "StepExecutionError", "StepParamsError", "StepTimeoutError",
    "ExecutionTimeoutError", "StepLimitExceeded", "ExecutionCancelled",
    "WorkflowExecutor", "WorkflowValidator", "WorkflowBuilder", "StepRegistry",
    "default_registry", "parse_workflow", "load_workflow", "dump_workflow",
    "__version__",
]
