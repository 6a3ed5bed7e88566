from stepflow.handlers.base import StepExecutionContext, StepHandler
from stepflow.handlers.completion import CompletionParams, CompletionStepHandler
from stepflow.handlers.condition import ConditionParams, ConditionStepHandler
from stepflow.handlers.http_call import HttpCallParams, HttpCallStepHandler
from stepflow.handlers.retrieval import RetrievalParams, RetrievalStepHandler

__all__ = [
    "StepHandler",
    "StepExecutionContext",
    "RetrievalStepHandler",
    "RetrievalParams",
    "CompletionStepHandler",
    "CompletionParams",
    "ConditionStepHandler",
    "ConditionParams",
    "HttpCallStepHandler",
    "HttpCallParams",
]
