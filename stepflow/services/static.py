"""Deterministic CompletionService for tests, demos and offline CLI runs."""

import math
import re
from typing import Optional, Union

from stepflow.services.base import Completion, TokenUsage


def estimate_tokens(text: str) -> int:
    """Rough token count: about four characters per token."""
    return math.ceil(len(text) / 4)


class StaticCompletionService:
    """Answers prompts from a pattern table, echoing the prompt otherwise.

    Patterns are matched case-insensitively with ``re.search`` in insertion
    order; the first hit wins.  Every call is recorded in ``calls``.

    Usage::

        llm = StaticCompletionService({"refund": "Refunds take 14 days."})
        completion = await llm.complete("mock-model", "What is the refund window?")
    """

    def __init__(
        self,
        responses: Optional[dict[str, str]] = None,
        fallback: Optional[str] = None,
    ):
        self._responses: list[tuple[re.Pattern, str]] = []
        self.fallback = fallback
        self.calls: list[dict] = []
        for pattern, reply in (responses or {}).items():
            self.add_response(pattern, reply)

    def add_response(self, pattern: Union[str, re.Pattern], reply: str) -> None:
        compiled = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, re.IGNORECASE)
        self._responses.append((compiled, reply))

    def clear_responses(self) -> None:
        self._responses.clear()

    def reply_for(self, prompt: str) -> str:
        for pattern, reply in self._responses:
            if pattern.search(prompt):
                return reply
        if self.fallback is not None:
            return self.fallback
        return f"Echo: {prompt}"

    async def complete(
        self,
        model: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Completion:
        self.calls.append({
            "model": model,
            "prompt": prompt,
            "system_prompt": system_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        text = self.reply_for(prompt)
        prompt_tokens = estimate_tokens((system_prompt or "") + prompt)
        completion_tokens = estimate_tokens(text)
        return Completion(
            text=text,
            model=model,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )
