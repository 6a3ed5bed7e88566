"""
WorkflowExecutor — runs a validated Workflow one step at a time.

Control flow per step:

    guards (step limit, duration, cancellation)
      -> look up handler -> resolve {{templates}} in params -> validate params
      -> attempt loop (timeout per attempt, linear backoff between attempts)
      -> record output / failure -> pick the next step

Workflow-level failures never escape ``execute``: they end the run with a
terminal status and an ``ExecutionError`` on the returned record.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from stepflow.callbacks.base import ExecutionSink, NullSink
from stepflow.callbacks.logging import LoggingSink
from stepflow.config import StepflowConfig, config as default_config
from stepflow.exceptions import (
    ExecutionCancelled,
    ExecutionTimeoutError,
    StepExecutionError,
    StepflowError,
    StepLimitExceeded,
    StepParamsError,
    StepTimeoutError,
    WorkflowError,
    WorkflowValidationError,
)
from stepflow.handlers.base import StepExecutionContext, StepHandler
from stepflow.types import (
    ExecutionError,
    ExecutionStatus,
    RetryPolicy,
    StepResult,
    StepType,
    Workflow,
    WorkflowExecution,
    WorkflowStep,
)

from .context import ExecutionState, utcnow
from .registry import StepRegistry
from .template import resolve_object
from .validator import WorkflowValidator

logger = logging.getLogger(__name__)


class _StepFailure:
    """Outcome of a step whose attempts all failed."""

    def __init__(self, message: str, code: str, attempts: int):
        self.message = message
        self.code = code
        self.attempts = attempts


class WorkflowExecutor:
    """
    Executes workflows against a StepRegistry.

    Usage::

        registry = default_registry(retrieval=..., completion=...)
        executor = WorkflowExecutor(registry)
        execution = await executor.execute(workflow, tenant_id="acme", input={"question": "..."})
        if execution.status == ExecutionStatus.COMPLETED:
            print(execution.output)

    One executor can run many workflows concurrently; all per-run state lives
    in an ExecutionState created by ``execute``.  ``sleep`` and ``clock`` are
    injectable so retry backoff and run duration can be controlled in tests.
    """

    def __init__(
        self,
        registry: StepRegistry,
        validator: Optional[WorkflowValidator] = None,
        sink: Optional[ExecutionSink] = None,
        config: Optional[StepflowConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry
        self.validator = validator or WorkflowValidator()
        self.config = config or default_config
        if sink is None:
            sink = LoggingSink() if self.config.audit_log_enabled else NullSink()
        self.sink = sink
        self._sleep = sleep
        self._clock = clock

    # ── Public API ─────────────────────────────────────────────────────────

    async def execute(
        self,
        workflow: Workflow,
        tenant_id: str,
        input: Optional[dict[str, Any]] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> WorkflowExecution:
        """
        Run ``workflow`` for ``tenant_id`` with ``input`` as the ``input`` root.

        Args:
            workflow:     Definition to run; deep-copied, never mutated.
            tenant_id:    Passed to handlers and exposed as ``context.tenant_id``.
            input:        Caller payload, exposed as the ``input`` template root.
            cancel_event: Optional event; once set the run stops before its next step.

        Returns:
            The WorkflowExecution in a terminal status.

        Raises:
            TypeError: ``workflow`` is None.
        """
        if workflow is None:
            raise TypeError("execute() requires a workflow, got None")

        workflow = workflow.model_copy(deep=True)
        execution = WorkflowExecution(
            workflow_id=workflow.id,
            workflow_version=workflow.version,
            tenant_id=tenant_id,
            input=copy.deepcopy(dict(input or {})),
        )

        validation = self.validator.validate(workflow, registry=self.registry)
        for warning in validation.warnings:
            logger.warning(f"[Executor] Workflow {workflow.id}: {warning}")
        if not validation.valid:
            now = utcnow()
            execution.status = ExecutionStatus.FAILED
            execution.started_at = now
            execution.completed_at = now
            execution.duration_ms = 0
            execution.error = ExecutionError(
                message="Workflow validation failed: " + "; ".join(validation.errors),
                code=WorkflowValidationError.code,
            )
            logger.warning(f"[Executor] Rejected workflow {workflow.id}: {execution.error.message}")
            self._emit(
                "error", "Workflow rejected by validation",
                event="execution_rejected", execution_id=execution.id,
                workflow_id=workflow.id, errors=validation.errors,
            )
            return execution

        state = ExecutionState(execution, clock=self._clock)
        execution.status = ExecutionStatus.RUNNING
        execution.started_at = utcnow()
        logger.info(
            f"[Executor] Execution {execution.id} started: workflow={workflow.id} "
            f"v{workflow.version} tenant={tenant_id}"
        )
        self._emit(
            "info", "Execution started",
            event="execution_started", execution_id=execution.id,
            workflow_id=workflow.id, tenant_id=tenant_id,
        )

        try:
            await self._run(workflow, state, cancel_event)
            execution.status = ExecutionStatus.COMPLETED
            execution.output = state.last_output
        except StepflowError as exc:
            self._terminate(state, exc)
        except asyncio.CancelledError:
            self._terminate(state, ExecutionCancelled("Execution task was cancelled"))
            raise
        except Exception as exc:
            logger.error(f"[Executor] Unexpected error in execution {execution.id}: {exc}", exc_info=True)
            self._terminate(state, exc)
        finally:
            execution.completed_at = utcnow()
            execution.duration_ms = state.elapsed_ms()

        if execution.status == ExecutionStatus.COMPLETED:
            logger.info(
                f"[Executor] Execution {execution.id} completed: "
                f"{execution.metrics.steps_executed} step(s) in {execution.duration_ms}ms"
            )
            self._emit(
                "info", "Execution completed",
                event="execution_completed", execution_id=execution.id,
                steps_executed=execution.metrics.steps_executed,
                duration_ms=execution.duration_ms,
            )
        return execution

    # ── Run loop ───────────────────────────────────────────────────────────

    async def _run(
        self,
        workflow: Workflow,
        state: ExecutionState,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        current: Optional[str] = workflow.entry_step_id
        while current:
            self._check_guards(workflow, state, cancel_event)

            step = workflow.get_step(current)
            if step is None:
                raise WorkflowError(
                    f"Step '{current}' not found in workflow '{workflow.id}'",
                    details={"step_id": current},
                )

            record, started = state.start_step(step)
            self._emit(
                "info", f"Step {step.id} started",
                event="step_started", execution_id=state.execution.id,
                step_id=step.id, step_type=step.type,
            )

            outcome = await self._run_step(step, record, state)

            if isinstance(outcome, _StepFailure):
                state.fail_step(record, started, outcome.message, outcome.attempts)
                logger.warning(
                    f"[Executor] Step {step.id} failed after {outcome.attempts} attempt(s): "
                    f"{outcome.message}"
                )
                self._emit(
                    "error", f"Step {step.id} failed",
                    event="step_failed", execution_id=state.execution.id,
                    step_id=step.id, code=outcome.code, error=outcome.message,
                    attempts=outcome.attempts,
                )
                if step.on_failure:
                    current = step.on_failure
                    continue
                raise StepExecutionError(
                    f"Step '{step.id}' failed: {outcome.message}",
                    step_id=step.id,
                    step_type=step.type,
                    details={"code": outcome.code, "attempts": outcome.attempts},
                )

            result, attempts = outcome
            state.complete_step(record, started, result, attempts)
            self._emit(
                "info", f"Step {step.id} completed",
                event="step_completed", execution_id=state.execution.id,
                step_id=step.id, duration_ms=record.duration_ms,
                retry_count=record.retry_count,
            )
            current = self._next_step_id(step, result)

    def _check_guards(
        self,
        workflow: Workflow,
        state: ExecutionState,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        if state.steps_executed >= workflow.max_steps:
            raise StepLimitExceeded(
                f"Workflow '{workflow.id}' exceeded its limit of {workflow.max_steps} step(s)",
                max_steps=workflow.max_steps,
            )
        limit = workflow.max_execution_duration_ms
        if limit is not None and state.elapsed_ms() > limit:
            raise ExecutionTimeoutError(
                f"Workflow '{workflow.id}' exceeded its maximum duration of {limit}ms",
                timeout_ms=limit,
            )
        if cancel_event is not None and cancel_event.is_set():
            raise ExecutionCancelled(f"Execution {state.execution.id} was cancelled")

    @staticmethod
    def _next_step_id(step: WorkflowStep, result: StepResult) -> Optional[str]:
        if step.type == StepType.CONDITION:
            output = result.output if isinstance(result.output, dict) else {}
            return output.get("nextStepId")
        return step.on_success or step.next_step_id

    # ── Single step ────────────────────────────────────────────────────────

    async def _run_step(self, step: WorkflowStep, record, state: ExecutionState):
        """Run every attempt of one step.

        Returns ``(StepResult, attempts)`` on success or a ``_StepFailure``.
        """
        handler = self.registry.get(step.type)
        if handler is None:
            return _StepFailure(
                f"No handler registered for step type '{step.type}'", "HANDLER_NOT_FOUND", 1
            )

        params = resolve_object(step.params, state.template_context)
        record.input = params
        try:
            handler.validate_params(params)
        except StepParamsError as exc:
            return _StepFailure(str(exc), exc.code, 1)
        except Exception as exc:
            logger.warning(f"[Executor] Step {step.id} params check raised: {exc!r}")
            return _StepFailure(str(exc) or type(exc).__name__, StepParamsError.code, 1)

        policy = self._retry_policy(step)
        timeout_ms = step.timeout_ms or self.config.default_step_timeout_ms

        attempt = 0
        while True:
            attempt += 1
            ctx = StepExecutionContext(
                tenant_id=state.execution.tenant_id,
                workflow_id=state.execution.workflow_id,
                execution_id=state.execution.id,
                step_id=step.id,
                template_context=state.handler_view(),
                sink=self.sink,
            )
            retryable = True
            try:
                result = await self._attempt(handler, copy.deepcopy(params), ctx, step, timeout_ms)
                if result.success:
                    return result, attempt
                if result.error is not None:
                    message = result.error.message
                    code = result.error.code or StepExecutionError.code
                    retryable = result.error.recoverable
                else:
                    message, code, retryable = "Step handler reported failure", StepExecutionError.code, False
            except StepParamsError as exc:
                message, code, retryable = str(exc), exc.code, False
            except StepTimeoutError as exc:
                message, code = str(exc), exc.code
            except Exception as exc:
                logger.warning(f"[Executor] Step {step.id} attempt {attempt} raised: {exc!r}")
                message, code = str(exc) or type(exc).__name__, StepExecutionError.code

            if not retryable or attempt >= policy.max_attempts:
                return _StepFailure(message, code, attempt)

            delay_ms = policy.base_delay_ms * attempt
            logger.info(
                f"[Executor] Retrying step {step.id} (attempt {attempt + 1}/{policy.max_attempts}) "
                f"in {delay_ms}ms: {message}"
            )
            self._emit(
                "warn", f"Retrying step {step.id}",
                event="step_retry", execution_id=state.execution.id,
                step_id=step.id, attempt=attempt, delay_ms=delay_ms, error=message,
            )
            await self._sleep(delay_ms / 1000)

    async def _attempt(
        self,
        handler: StepHandler,
        params: dict[str, Any],
        ctx: StepExecutionContext,
        step: WorkflowStep,
        timeout_ms: Optional[int],
    ) -> StepResult:
        call = handler.execute(params, ctx)
        if timeout_ms is None:
            result = await call
        else:
            try:
                result = await asyncio.wait_for(call, timeout=timeout_ms / 1000)
            except asyncio.TimeoutError:
                raise StepTimeoutError(
                    f"Step '{step.id}' timed out after {timeout_ms}ms",
                    step_id=step.id,
                    step_type=step.type,
                    timeout_ms=timeout_ms,
                )
        if not isinstance(result, StepResult):
            raise StepExecutionError(
                f"Handler for '{step.type}' returned {type(result).__name__}, expected StepResult",
                step_id=step.id,
                step_type=step.type,
            )
        return result

    def _retry_policy(self, step: WorkflowStep) -> RetryPolicy:
        if step.retry is None:
            return RetryPolicy(max_attempts=1, base_delay_ms=self.config.default_retry_base_delay_ms)
        if "base_delay_ms" not in step.retry.model_fields_set:
            return RetryPolicy(
                max_attempts=step.retry.max_attempts,
                base_delay_ms=self.config.default_retry_base_delay_ms,
            )
        return step.retry

    # ── Termination & events ───────────────────────────────────────────────

    def _terminate(self, state: ExecutionState, exc: BaseException) -> None:
        execution = state.execution
        if isinstance(exc, ExecutionCancelled):
            status = ExecutionStatus.CANCELLED
        elif isinstance(exc, StepLimitExceeded):
            status = ExecutionStatus.FAILED
        elif isinstance(exc, ExecutionTimeoutError):
            status = ExecutionStatus.TIMEOUT
        else:
            status = ExecutionStatus.FAILED

        code = getattr(exc, "code", None) or StepflowError.code
        details = getattr(exc, "details", None) or {}
        step_id = getattr(exc, "step_id", None) or details.get("step_id") or state.current_step_id
        execution.status = status
        execution.error = ExecutionError(message=str(exc), code=code, step_id=step_id)

        record = state.abandon_step(str(exc) or type(exc).__name__)
        if record is not None:
            self._emit(
                "error", f"Step {record.step_id} failed",
                event="step_failed", execution_id=execution.id,
                step_id=record.step_id, code=code, error=record.error, attempts=1,
            )

        logger.warning(f"[Executor] Execution {execution.id} ended {status.value}: {exc}")
        self._emit(
            "error", f"Execution {status.value}",
            event="execution_failed", execution_id=execution.id,
            status=status.value, code=code, step_id=step_id, error=str(exc),
        )

    def _emit(self, level: str, message: str, **fields: Any) -> None:
        try:
            getattr(self.sink, level)(message, **fields)
        except Exception as exc:
            logger.warning(f"[Executor] Event sink failed on {fields.get('event')}: {exc}")
