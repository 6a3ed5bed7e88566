"""In-memory RetrievalService with lexical scoring, for development and tests."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from stepflow.exceptions import ServiceError
from stepflow.services.base import SearchResult

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9]+")


class StoredDocument(BaseModel):
    """A passage held by InMemoryRetrievalService.

    ``tenant_id=None`` makes the passage visible to every tenant.
    """
    collection_id: str
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    tenant_id: Optional[str] = None


def _terms(text: str) -> set[str]:
    return set(_WORD_RE.findall(text.lower()))


def lexical_score(query: str, text: str) -> float:
    """Share of the query's distinct terms present in ``text``, in [0, 1]."""
    query_terms = _terms(query)
    if not query_terms:
        return 0.0
    return len(query_terms & _terms(text)) / len(query_terms)


class InMemoryRetrievalService:
    """Keeps documents in a list and ranks them by term overlap with the query.

    Usage::

        service = InMemoryRetrievalService()
        service.add_document("policies", "Refunds within 14 days.", {"category": "refund"})
        results = await service.search("policies", "refund days", 3, None, "tenant-1")
    """

    def __init__(self, documents: Optional[list[StoredDocument]] = None):
        self._documents: list[StoredDocument] = list(documents or [])

    def add_document(
        self,
        collection_id: str,
        text: str,
        metadata: Optional[dict[str, Any]] = None,
        tenant_id: Optional[str] = None,
    ) -> StoredDocument:
        document = StoredDocument(
            collection_id=collection_id,
            text=text,
            metadata=metadata or {},
            tenant_id=tenant_id,
        )
        self._documents.append(document)
        return document

    def load_file(self, path: Union[str, Path]) -> int:
        """Load documents from a JSON array of objects.

        Each object needs ``collectionId`` (or ``collection_id``) and ``text``;
        ``metadata`` and ``tenantId`` are optional.

        Returns:
            Number of documents added.

        Raises:
            ServiceError: unreadable file or malformed document list
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ServiceError(f"Cannot read documents from {path}: {e}", service="retrieval")
        if not isinstance(raw, list):
            raise ServiceError(f"{path}: expected a JSON array of documents", service="retrieval")

        added = 0
        for item in raw:
            if not isinstance(item, dict):
                raise ServiceError(f"{path}: every document must be an object", service="retrieval")
            try:
                document = StoredDocument(
                    collection_id=item.get("collectionId", item.get("collection_id", "")),
                    text=item.get("text", ""),
                    metadata=item.get("metadata") or {},
                    tenant_id=item.get("tenantId", item.get("tenant_id")),
                )
            except ValidationError as e:
                raise ServiceError(f"{path}: invalid document: {e}", service="retrieval")
            self._documents.append(document)
            added += 1
        logger.info(f"[Retrieval] Loaded {added} document(s) from {path}")
        return added

    def clear(self) -> None:
        self._documents.clear()

    def __len__(self) -> int:
        return len(self._documents)

    async def search(
        self,
        collection_id: str,
        query: str,
        top_k: int,
        filters: Optional[dict[str, Any]],
        tenant_id: str,
    ) -> list[SearchResult]:
        """Score every visible document in the collection and return the best ``top_k``.

        Documents with no term in common with the query are dropped.  Filters
        are exact matches on metadata keys.  Ties keep insertion order.
        """
        scored: list[SearchResult] = []
        for document in self._documents:
            if document.collection_id != collection_id:
                continue
            if document.tenant_id is not None and document.tenant_id != tenant_id:
                continue
            if filters and any(document.metadata.get(k) != v for k, v in filters.items()):
                continue
            score = lexical_score(query, document.text)
            if score <= 0:
                continue
            scored.append(SearchResult(text=document.text, score=score, metadata=dict(document.metadata)))

        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:max(top_k, 0)]
