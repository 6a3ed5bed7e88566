"""HTTP call step: make one request to an external API with httpx."""

import json
import logging
import time
from typing import Any, Literal, Optional

import httpx
from pydantic import Field

from stepflow.config import config
from stepflow.handlers.base import StepExecutionContext, StepHandler, elapsed_ms
from stepflow.types import StepResult, StepType, WireModel

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


class HttpCallParams(WireModel):
    url: str = Field(min_length=1)
    method: HttpMethod = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)
    body: Any = None


def _parse_body(response: httpx.Response) -> Any:
    """JSON when the body parses as JSON, text otherwise, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError):
        return response.text


class HttpCallStepHandler(StepHandler):
    """Performs the request and reports ``{statusCode, headers, data}``.

    Transport errors and 5xx responses are recoverable failures, so a retry
    policy on the step applies; 4xx responses fail without retry.
    """

    type = StepType.HTTP_CALL.value
    description = "Call an HTTP API and return its status, headers and body"
    params_model = HttpCallParams

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout_seconds: float = None):
        """
        Args:
            client:          Shared client; when None a client is opened per call.
            timeout_seconds: Per-request timeout for per-call clients.
        """
        self.client = client
        self.timeout_seconds = (
            config.http_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

    async def execute(self, params: dict[str, Any], ctx: StepExecutionContext) -> StepResult:
        p = self.parse(params)
        request_kwargs: dict[str, Any] = {"headers": p.headers}
        # Only pass params when non-empty; httpx drops query strings already in the URL otherwise
        if p.query:
            request_kwargs["params"] = p.query
        if p.body is not None:
            if isinstance(p.body, (dict, list)):
                request_kwargs["json"] = p.body
            else:
                request_kwargs["content"] = str(p.body).encode()

        started = time.monotonic()
        try:
            if self.client is not None:
                response = await self.client.request(p.method, p.url, **request_kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.request(p.method, p.url, **request_kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"[HttpCall] {p.method} {p.url} failed: {e}")
            return self.failure(
                f"{p.method} {p.url} failed: {e}",
                code="HTTP_TRANSPORT_ERROR",
                recoverable=True,
                duration_ms=elapsed_ms(started),
                api_call_count=1,
            )

        output = {
            "statusCode": response.status_code,
            "headers": dict(response.headers),
            "data": _parse_body(response),
        }
        if response.status_code >= 400:
            server_side = response.status_code >= 500
            return self.failure(
                f"{p.method} {p.url} returned HTTP {response.status_code}",
                code=f"HTTP_{response.status_code}",
                recoverable=server_side,
                duration_ms=elapsed_ms(started),
                api_call_count=1,
                response=output,
            )
        return self.success(output, duration_ms=elapsed_ms(started), api_call_count=1)
