"""stepflow.workflows — Workflow definition, validation, and execution."""

from .builder import WorkflowBuilder
from .executor import WorkflowExecutor
from .loader import dump_workflow, load_workflow, parse_workflow, save_workflow
from .registry import StepRegistry, default_registry
from .validator import WorkflowValidator

__all__ = [
    "WorkflowExecutor",
    "WorkflowValidator",
    "WorkflowBuilder",
    "StepRegistry",
    "default_registry",
    "parse_workflow",
    "load_workflow",
    "dump_workflow",
    "save_workflow",
]
