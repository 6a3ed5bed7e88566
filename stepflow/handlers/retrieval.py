"""Retrieval step: search a document collection for passages relevant to a query."""

import logging
import time
from typing import Any, Optional

from pydantic import Field

from stepflow.exceptions import ServiceError
from stepflow.handlers.base import StepExecutionContext, StepHandler, elapsed_ms
from stepflow.services.base import RetrievalService
from stepflow.types import StepResult, StepType, WireModel

logger = logging.getLogger(__name__)


class RetrievalParams(WireModel):
    collection_id: str = Field(min_length=1)
    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1)
    min_score: Optional[float] = Field(default=None, ge=0, le=1)
    filters: Optional[dict[str, Any]] = None


class RetrievalStepHandler(StepHandler):
    type = StepType.RETRIEVAL.value
    description = "Search a knowledge collection and return the best matching passages"
    params_model = RetrievalParams

    def __init__(self, service: RetrievalService):
        self.service = service

    async def execute(self, params: dict[str, Any], ctx: StepExecutionContext) -> StepResult:
        p = self.parse(params)
        started = time.monotonic()
        try:
            results = await self.service.search(
                p.collection_id, p.query, p.top_k, p.filters, ctx.tenant_id
            )
        except ServiceError as e:
            logger.warning(f"[Retrieval] Search in '{p.collection_id}' failed: {e}")
            return self.failure(
                str(e), code=ServiceError.code, recoverable=True,
                duration_ms=elapsed_ms(started),
            )

        if p.min_score is not None:
            results = [r for r in results if r.score >= p.min_score]

        return self.success(
            {
                "results": [r.model_dump() for r in results],
                "count": len(results),
                "query": p.query,
            },
            duration_ms=elapsed_ms(started),
            retrieval_count=1,
        )
