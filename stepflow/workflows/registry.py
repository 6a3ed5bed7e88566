"""Lookup table from step type to the handler that executes it."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

from stepflow.exceptions import HandlerNotFound

if TYPE_CHECKING:
    import httpx

    from stepflow.handlers.base import StepHandler
    from stepflow.services.base import CompletionService, RetrievalService


class StepRegistry:
    """Maps step-type strings to StepHandler instances.

    One handler per type; registering a type again replaces the previous
    handler.  Type strings are not validated.  Registration is expected to
    happen once during setup; during execution the registry is only read, so
    one instance can be shared by concurrent executions.
    """

    def __init__(self):
        self._handlers: dict[str, "StepHandler"] = {}

    def register(self, step_type: str, handler: "StepHandler") -> None:
        """Register (or replace) the handler for ``step_type``."""
        self._handlers[_key(step_type)] = handler

    def get(self, step_type: str) -> Optional["StepHandler"]:
        """Return the handler for ``step_type``, or None."""
        return self._handlers.get(_key(step_type))

    def require(self, step_type: str) -> "StepHandler":
        """Get handler for ``step_type``.

        Raises:
            HandlerNotFound: if no handler is registered for the type
        """
        handler = self.get(step_type)
        if handler is None:
            raise HandlerNotFound(
                f"No handler registered for step type '{step_type}'", step_type=_key(step_type)
            )
        return handler

    def has(self, step_type: str) -> bool:
        return _key(step_type) in self._handlers

    def list_handlers(self) -> list["StepHandler"]:
        """All registered handlers, in registration order."""
        return list(self._handlers.values())

    def list_types(self) -> list[str]:
        return list(self._handlers.keys())

    def unregister(self, step_type: str) -> bool:
        """Remove a handler.  Returns True if one was registered."""
        return self._handlers.pop(_key(step_type), None) is not None

    def clear(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, step_type: object) -> bool:
        return isinstance(step_type, str) and self.has(step_type)


def _key(step_type) -> str:
    return step_type.value if isinstance(step_type, Enum) else step_type


def default_registry(
    retrieval: Optional["RetrievalService"] = None,
    completion: Optional["CompletionService"] = None,
    http_client: Optional["httpx.AsyncClient"] = None,
    default_model: Optional[str] = None,
) -> StepRegistry:
    """Build a registry with the built-in handlers.

    The condition and HTTP handlers are always registered; retrieval and
    completion handlers only when their service is supplied.

    Args:
        retrieval:     RetrievalService backing ``retrieval`` steps
        completion:    CompletionService backing ``completion`` steps
        http_client:   Optional shared httpx.AsyncClient for ``http_call`` steps
        default_model: Model used by completion steps that name none
    """
    from stepflow.handlers import (
        CompletionStepHandler,
        ConditionStepHandler,
        HttpCallStepHandler,
        RetrievalStepHandler,
    )
    from stepflow.types import StepType

    registry = StepRegistry()
    registry.register(StepType.CONDITION.value, ConditionStepHandler())
    registry.register(StepType.HTTP_CALL.value, HttpCallStepHandler(client=http_client))
    if retrieval is not None:
        registry.register(StepType.RETRIEVAL.value, RetrievalStepHandler(retrieval))
    if completion is not None:
        registry.register(
            StepType.COMPLETION.value,
            CompletionStepHandler(completion, default_model=default_model),
        )
    return registry
