from stepflow.services.base import (
    Completion,
    CompletionService,
    RetrievalService,
    SearchResult,
    TokenUsage,
)
from stepflow.services.memory import InMemoryRetrievalService, StoredDocument
from stepflow.services.static import StaticCompletionService

__all__ = [
    "Completion",
    "CompletionService",
    "RetrievalService",
    "SearchResult",
    "TokenUsage",
    "InMemoryRetrievalService",
    "StoredDocument",
    "StaticCompletionService",
]
