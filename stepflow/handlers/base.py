"""Base class and execution context for step handlers.

A handler turns one step's resolved params into a StepResult.  Handlers are
registered per step type on a StepRegistry and shared by every execution
that uses that registry, so they must keep no per-run state.

Usage:
    class EchoParams(WireModel):
        text: str

    class EchoStepHandler(StepHandler):
        type = "echo"
        description = "Returns its text param"
        params_model = EchoParams

        async def execute(self, params, ctx):
            p = self.parse(params)
            return self.success({"text": p.text})

    registry.register("echo", EchoStepHandler())
"""

import time
from typing import Any, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from stepflow.exceptions import StepParamsError
from stepflow.types import StepError, StepResult, TemplateContext


class StepExecutionContext(BaseModel):
    """What a handler may know about the run it is part of.

    ``template_context`` is a private copy; changes to it are not seen by the
    executor.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    tenant_id: str
    workflow_id: str
    execution_id: str
    step_id: str
    template_context: TemplateContext
    sink: Any = None


class StepHandler:
    """Base class for step handlers.

    Subclasses set ``type``, ``description`` and ``params_model`` and
    implement ``execute``.
    """

    type: str = ""
    description: str = ""
    params_model: Optional[Type[BaseModel]] = None

    def validate_params(self, params: dict[str, Any]) -> None:
        """Check the resolved params before any side effect.

        Raises:
            StepParamsError: params are not a mapping or fail ``params_model``
        """
        self.parse(params)

    def parse(self, params: dict[str, Any]) -> Any:
        """Validate ``params`` against ``params_model`` and return the model.

        Returns the params unchanged when the handler declares no model.
        """
        if not isinstance(params, dict):
            raise StepParamsError(
                f"{self.type or type(self).__name__} params must be an object",
                step_type=self.type,
            )
        if self.params_model is None:
            return params
        try:
            return self.params_model.model_validate(params)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
                for err in e.errors()
            )
            raise StepParamsError(
                f"Invalid params for {self.type} step: {problems}",
                step_type=self.type,
                details={"errors": e.errors(include_url=False)},
            )

    async def execute(self, params: dict[str, Any], ctx: StepExecutionContext) -> StepResult:
        raise NotImplementedError

    def param_schema(self) -> dict:
        """JSON schema of the accepted params (informational only)."""
        if self.params_model is None:
            return {"type": "object"}
        return self.params_model.model_json_schema(by_alias=True)

    # ── Result helpers ─────────────────────────────────────────────────────

    @staticmethod
    def success(output: Any, **metadata: Any) -> StepResult:
        return StepResult(success=True, output=output, metadata=metadata)

    @staticmethod
    def failure(
        message: str,
        code: Optional[str] = None,
        recoverable: bool = False,
        **metadata: Any,
    ) -> StepResult:
        return StepResult(
            success=False,
            metadata=metadata,
            error=StepError(message=message, code=code, recoverable=recoverable),
        )


def elapsed_ms(started: float) -> int:
    """Milliseconds since ``started`` (a ``time.monotonic()`` reading)."""
    return int((time.monotonic() - started) * 1000)
