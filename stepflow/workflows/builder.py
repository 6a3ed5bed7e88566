"""Fluent construction of Workflow definitions in code."""

from typing import Any, Optional

from stepflow.config import config
from stepflow.exceptions import WorkflowError
from stepflow.types import RetryPolicy, StepType, Workflow, WorkflowStep

from .validator import WorkflowValidator


class WorkflowBuilder:
    """Builds a Workflow step by step.

    Unless ``next_step_id``/``on_success`` is given, each non-condition step
    is linked to the step added after it.  Condition steps are never linked
    implicitly; they route through ``on_true``/``on_false``.  The first step
    added is the entry unless ``entry()`` says otherwise.

    Usage::

        workflow = (
            WorkflowBuilder("support-answer")
            .retrieval("search", collection_id="policies", query="{{input.question}}")
            .completion("answer", prompt="Context: {{steps.search.output.results}}")
            .build()
        )
    """

    def __init__(self, name: str = "", workflow_id: Optional[str] = None, version: int = 1):
        self._name = name
        self._id = workflow_id
        self._version = version
        self._steps: list[WorkflowStep] = []
        self._explicit_links: set[str] = set()
        self._entry: Optional[str] = None
        self._max_steps: Optional[int] = None
        self._timeout_ms: Optional[int] = None

    # ── Workflow settings ──────────────────────────────────────────────────

    def entry(self, step_id: str) -> "WorkflowBuilder":
        self._entry = step_id
        return self

    def max_steps(self, max_steps: int) -> "WorkflowBuilder":
        self._max_steps = max_steps
        return self

    def timeout(self, timeout_ms: int) -> "WorkflowBuilder":
        """Maximum execution duration of the whole run."""
        self._timeout_ms = timeout_ms
        return self

    # ── Steps ──────────────────────────────────────────────────────────────

    def step(
        self,
        step_id: str,
        step_type: str,
        params: Optional[dict[str, Any]] = None,
        *,
        label: str = "",
        next_step_id: Optional[str] = None,
        on_success: Optional[str] = None,
        on_failure: Optional[str] = None,
        max_attempts: Optional[int] = None,
        base_delay_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> "WorkflowBuilder":
        """Add a step of any type."""
        retry = None
        if max_attempts is not None or base_delay_ms is not None:
            retry_fields: dict[str, int] = {}
            if max_attempts is not None:
                retry_fields["max_attempts"] = max_attempts
            if base_delay_ms is not None:
                retry_fields["base_delay_ms"] = base_delay_ms
            retry = RetryPolicy(**retry_fields)

        self._steps.append(WorkflowStep(
            id=step_id,
            type=step_type.value if isinstance(step_type, StepType) else step_type,
            label=label,
            params=dict(params or {}),
            next_step_id=next_step_id,
            on_success=on_success,
            on_failure=on_failure,
            retry=retry,
            timeout_ms=timeout_ms,
        ))
        if next_step_id or on_success:
            self._explicit_links.add(step_id)
        return self

    def retrieval(
        self,
        step_id: str,
        *,
        collection_id: str,
        query: str,
        top_k: int = 5,
        min_score: Optional[float] = None,
        filters: Optional[dict[str, Any]] = None,
        **options: Any,
    ) -> "WorkflowBuilder":
        params: dict[str, Any] = {"collectionId": collection_id, "query": query, "topK": top_k}
        if min_score is not None:
            params["minScore"] = min_score
        if filters:
            params["filters"] = filters
        return self.step(step_id, StepType.RETRIEVAL, params, **options)

    def completion(
        self,
        step_id: str,
        *,
        prompt: str,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **options: Any,
    ) -> "WorkflowBuilder":
        params: dict[str, Any] = {"prompt": prompt}
        if model:
            params["model"] = model
        if system_prompt:
            params["systemPrompt"] = system_prompt
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["maxTokens"] = max_tokens
        return self.step(step_id, StepType.COMPLETION, params, **options)

    def condition(
        self,
        step_id: str,
        *,
        expression: str,
        on_true: str,
        on_false: Optional[str] = None,
        **options: Any,
    ) -> "WorkflowBuilder":
        params: dict[str, Any] = {"expression": expression, "onTrue": on_true}
        if on_false:
            params["onFalse"] = on_false
        return self.step(step_id, StepType.CONDITION, params, **options)

    def http_call(
        self,
        step_id: str,
        *,
        url: str,
        method: str = "GET",
        headers: Optional[dict[str, str]] = None,
        query: Optional[dict[str, Any]] = None,
        body: Any = None,
        **options: Any,
    ) -> "WorkflowBuilder":
        params: dict[str, Any] = {"url": url, "method": method.upper()}
        if headers:
            params["headers"] = headers
        if query:
            params["query"] = query
        if body is not None:
            params["body"] = body
        return self.step(step_id, StepType.HTTP_CALL, params, **options)

    def end(self) -> "WorkflowBuilder":
        """Stop the implicit link from the last added step to the next one."""
        if self._steps:
            self._explicit_links.add(self._steps[-1].id)
        return self

    # ── Build ──────────────────────────────────────────────────────────────

    def build(self, validate: bool = True) -> Workflow:
        """Assemble the Workflow.

        Raises:
            WorkflowError: no steps were added
            WorkflowValidationError: ``validate`` is True and the graph is invalid
        """
        if not self._steps:
            raise WorkflowError("Cannot build a workflow without steps")

        steps = [s.model_copy(deep=True) for s in self._steps]
        for current, following in zip(steps, steps[1:]):
            if current.type == StepType.CONDITION or current.id in self._explicit_links:
                continue
            current.next_step_id = following.id

        fields: dict[str, Any] = {
            "name": self._name,
            "version": self._version,
            "entry_step_id": self._entry or steps[0].id,
            "steps": steps,
            "max_steps": self._max_steps or config.default_max_steps,
        }
        if self._id:
            fields["id"] = self._id
        if self._timeout_ms is not None:
            fields["max_execution_duration_ms"] = self._timeout_ms
        workflow = Workflow(**fields)

        if validate:
            WorkflowValidator().validate_or_raise(workflow)
        return workflow
