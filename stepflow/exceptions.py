"""Typed exception hierarchy. Every error stepflow can raise."""


class StepflowError(Exception):
    """Base exception for all stepflow errors."""
    code = "STEPFLOW_ERROR"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class HandlerNotFound(StepflowError):
    """No handler is registered for a step type."""
    code = "HANDLER_NOT_FOUND"

    def __init__(self, message: str, step_type: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.step_type = step_type


class ServiceError(StepflowError):
    """A retrieval / completion / HTTP collaborator failed."""
    code = "SERVICE_ERROR"

    def __init__(self, message: str, service: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.service = service


# ── Template / expression sub-languages ───────────────────────────────────────
# Neither escapes the public resolve/evaluate calls; both are raised internally
# and by the lower-level resolve_path / parse_expression helpers.


class TemplateResolutionError(StepflowError):
    """A {{placeholder}} path could not be resolved against the context."""
    code = "TEMPLATE_RESOLUTION_ERROR"

    def __init__(self, message: str, template: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.template = template


class ExpressionEvaluationError(StepflowError):
    """A condition expression could not be tokenized, parsed or evaluated."""
    code = "EXPRESSION_EVALUATION_ERROR"

    def __init__(self, message: str, expression: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.expression = expression


# ── Workflow errors ───────────────────────────────────────────────────────────


class WorkflowError(StepflowError):
    """Base exception for all workflow-related errors."""
    code = "WORKFLOW_ERROR"


class WorkflowValidationError(WorkflowError):
    """Workflow definition is structurally invalid (cycles, missing steps, etc.)."""
    code = "WORKFLOW_VALIDATION_ERROR"

    def __init__(self, message: str, violations: list = None, **kwargs):
        super().__init__(message, **kwargs)
        self.violations = violations or []


class WorkflowLoadError(WorkflowError):
    """Malformed workflow document or unreadable workflow file."""
    code = "WORKFLOW_LOAD_ERROR"


class StepExecutionError(WorkflowError):
    """A step failed after exhausting its attempts."""
    code = "STEP_EXECUTION_ERROR"

    def __init__(self, message: str, step_id: str = "", step_type: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.step_id = step_id
        self.step_type = step_type


class StepParamsError(StepExecutionError):
    """Handler rejected the step's parameter bag."""
    code = "STEP_PARAMS_ERROR"


class StepTimeoutError(StepExecutionError):
    """A single step attempt exceeded its timeout."""
    code = "STEP_TIMEOUT"

    def __init__(self, message: str, timeout_ms: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_ms = timeout_ms


class ExecutionTimeoutError(WorkflowError):
    """The run exceeded the workflow's maximum execution duration."""
    code = "TIMEOUT_ERROR"

    def __init__(self, message: str, timeout_ms: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_ms = timeout_ms


class StepLimitExceeded(ExecutionTimeoutError):
    """The run executed as many steps as the workflow allows."""
    code = "STEP_LIMIT_EXCEEDED"

    def __init__(self, message: str, max_steps: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.max_steps = max_steps


class ExecutionCancelled(WorkflowError):
    """The run was cancelled by its caller."""
    code = "EXECUTION_CANCELLED"
