"""Completion step: ask a language model for text."""

import logging
import time
from typing import Any, Optional

from pydantic import Field

from stepflow.config import config
from stepflow.exceptions import ServiceError
from stepflow.handlers.base import StepExecutionContext, StepHandler, elapsed_ms
from stepflow.services.base import CompletionService
from stepflow.types import StepResult, StepType, WireModel

logger = logging.getLogger(__name__)


class CompletionParams(WireModel):
    model: Optional[str] = None
    prompt: str = Field(min_length=1)
    system_prompt: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1)


class CompletionStepHandler(StepHandler):
    type = StepType.COMPLETION.value
    description = "Generate text from a prompt with a language model"
    params_model = CompletionParams

    def __init__(self, service: CompletionService, default_model: Optional[str] = None):
        self.service = service
        self.default_model = default_model

    async def execute(self, params: dict[str, Any], ctx: StepExecutionContext) -> StepResult:
        p = self.parse(params)
        model = p.model or self.default_model or config.default_llm_model
        started = time.monotonic()
        try:
            completion = await self.service.complete(
                model,
                p.prompt,
                system_prompt=p.system_prompt,
                temperature=p.temperature,
                max_tokens=p.max_tokens,
            )
        except ServiceError as e:
            logger.warning(f"[Completion] Model {model} failed: {e}")
            return self.failure(
                str(e), code=ServiceError.code, recoverable=True,
                duration_ms=elapsed_ms(started),
            )

        return self.success(
            {
                "text": completion.text,
                "usage": completion.usage.model_dump(),
                "model": completion.model,
            },
            duration_ms=elapsed_ms(started),
            llm_call_count=1,
            tokens_used=completion.usage.total_tokens,
        )
