"""Condition step: evaluate an expression and pick the next step."""

import time
from typing import Any, Optional

from pydantic import Field

from stepflow.handlers.base import StepExecutionContext, StepHandler, elapsed_ms
from stepflow.types import StepResult, StepType, WireModel
from stepflow.workflows.expression import evaluate_expression


class ConditionParams(WireModel):
    expression: str = Field(min_length=1)
    on_true: str = Field(min_length=1)
    on_false: Optional[str] = None


class ConditionStepHandler(StepHandler):
    """Chooses ``onTrue`` or ``onFalse`` as the run's next step.

    Malformed expressions evaluate to false, so they never fail the step.  A
    false result with no ``onFalse`` target yields ``nextStepId=None`` and
    the run ends after this step.
    """

    type = StepType.CONDITION.value
    description = "Branch on a boolean expression over the run's data"
    params_model = ConditionParams

    async def execute(self, params: dict[str, Any], ctx: StepExecutionContext) -> StepResult:
        p = self.parse(params)
        started = time.monotonic()
        met = evaluate_expression(p.expression, ctx.template_context)
        return self.success(
            {
                "conditionMet": met,
                "nextStepId": p.on_true if met else p.on_false,
                "expression": p.expression,
            },
            duration_ms=elapsed_ms(started),
        )
