"""Collaborator protocols used by the built-in step handlers.

Handlers depend on these protocols only; concrete implementations live in
``stepflow.services.memory``, ``stepflow.services.static`` and
``stepflow.services.llm``.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """One retrieved passage."""
    text: str
    score: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Completion(BaseModel):
    """Generated text returned by a CompletionService."""
    text: str
    model: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


@runtime_checkable
class RetrievalService(Protocol):
    async def search(
        self,
        collection_id: str,
        query: str,
        top_k: int,
        filters: Optional[dict[str, Any]],
        tenant_id: str,
    ) -> list[SearchResult]:
        """Return at most ``top_k`` results for ``query``, best first."""
        ...


@runtime_checkable
class CompletionService(Protocol):
    async def complete(
        self,
        model: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Completion:
        ...
