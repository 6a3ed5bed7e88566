"""Thin wrapper around litellm exposing the CompletionService protocol.

litellm handles Anthropic, OpenAI, Ollama, and 100+ providers; the model
string selects the provider (``anthropic/...``, ``openai/...``,
``ollama/...``).  This adapter adds config defaults, usage extraction and
error normalization.
"""

import asyncio
import logging
from typing import Optional

import litellm

from stepflow.config import StepflowConfig, config as default_config
from stepflow.exceptions import ServiceError
from stepflow.services.base import Completion, TokenUsage

logger = logging.getLogger(__name__)


class LiteLLMCompletionService:
    """CompletionService backed by ``litellm.acompletion``."""

    def __init__(self, config: StepflowConfig = None, timeout_seconds: float = 60.0):
        self.config = config or default_config
        self.timeout_seconds = timeout_seconds
        litellm.drop_params = True  # ignore unsupported params per provider

    async def complete(
        self,
        model: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Completion:
        """Call the model with an optional system message and one user message.

        Raises:
            ServiceError: On any LLM provider error or timeout
        """
        model = model or self.config.default_llm_model
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": self.config.llm_temperature if temperature is None else temperature,
            "max_tokens": self.config.llm_max_tokens if max_tokens is None else max_tokens,
        }
        if self.config.llm_api_base:
            kwargs["api_base"] = self.config.llm_api_base

        try:
            response = await asyncio.wait_for(
                litellm.acompletion(**kwargs), timeout=self.timeout_seconds
            )
        except Exception as e:
            logger.warning(f"[LLM] Completion failed for model {model}: {e}")
            raise ServiceError(f"LLM call failed: {e}", service="completion", details={"model": model})

        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
        completion_tokens = getattr(usage, "completion_tokens", 0) or 0
        return Completion(
            text=choice.message.content or "",
            model=getattr(response, "model", None) or model,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=getattr(usage, "total_tokens", 0) or prompt_tokens + completion_tokens,
            ),
        )
