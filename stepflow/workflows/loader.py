"""Read and write workflow documents (JSON / YAML).

Documents use the camelCase field names (``entryStepId``, ``nextStepId``,
``retry.maxAttempts``); snake_case is accepted too.
"""

import json
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from stepflow.exceptions import WorkflowLoadError
from stepflow.types import Workflow

_YAML_SUFFIXES = (".yaml", ".yml")


def parse_workflow(document: Any) -> Workflow:
    """Build a Workflow from an already-decoded document.

    Only shape and field types are checked here; graph structure is the
    validator's job.

    Raises:
        WorkflowLoadError: the document is not a mapping or does not fit the model
    """
    if not isinstance(document, dict):
        raise WorkflowLoadError(
            f"Workflow document must be a mapping, got {type(document).__name__}"
        )
    try:
        return Workflow.model_validate(document)
    except ValidationError as e:
        raise WorkflowLoadError(
            f"Invalid workflow document: {e.error_count()} error(s)",
            details={"errors": e.errors(include_url=False)},
        )


def load_workflow(path: Union[str, Path]) -> Workflow:
    """Load a workflow from a ``.json``, ``.yaml`` or ``.yml`` file.

    Raises:
        WorkflowLoadError: missing file, unknown suffix, parse error or invalid document
    """
    p = Path(path)
    if not p.exists():
        raise WorkflowLoadError(f"Workflow file not found: {p}")

    suffix = p.suffix.lower()
    if suffix not in _YAML_SUFFIXES and suffix != ".json":
        raise WorkflowLoadError(
            f"Unsupported workflow file type '{p.suffix}'; use .json, .yaml or .yml"
        )

    try:
        text = p.read_text(encoding="utf-8")
        raw = yaml.safe_load(text) if suffix in _YAML_SUFFIXES else json.loads(text)
    except (OSError, UnicodeDecodeError) as e:
        raise WorkflowLoadError(f"Cannot read workflow file {p}: {e}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise WorkflowLoadError(f"Cannot parse workflow file {p}: {e}")

    try:
        return parse_workflow(raw)
    except WorkflowLoadError as e:
        raise WorkflowLoadError(f"{p}: {e}", details=e.details)


def dump_workflow(workflow: Workflow) -> dict[str, Any]:
    """Serialize to the camelCase document form, omitting unset optionals."""
    return workflow.model_dump(mode="json", by_alias=True, exclude_none=True)


def save_workflow(workflow: Workflow, path: Union[str, Path]) -> Path:
    """Write ``workflow`` to ``path``; the suffix selects JSON or YAML."""
    p = Path(path)
    document = dump_workflow(workflow)
    if p.suffix.lower() in _YAML_SUFFIXES:
        p.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
    else:
        p.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    return p
