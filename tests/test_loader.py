"""Tests for reading and writing workflow documents."""

import json

import pytest
import yaml

from stepflow.exceptions import WorkflowLoadError
from stepflow.types import Workflow, WorkflowStep
from stepflow.workflows.loader import dump_workflow, load_workflow, parse_workflow, save_workflow

_YAML_DOC = """\
id: wf-yaml
name: Support answer
entryStepId: search
steps:
  - id: search
    type: retrieval
    params:
      collectionId: policies
      query: "{{input.question}}"
    nextStepId: answer
    retry:
      maxAttempts: 3
      baseDelayMs: 250
  - id: answer
    type: completion
    timeoutMs: 5000
    params:
      prompt: "{{steps.search.output.results}}"
"""


def test_parse_camel_case_document():
    wf = parse_workflow(yaml.safe_load(_YAML_DOC))
    assert wf.id == "wf-yaml"
    assert wf.entry_step_id == "search"
    search = wf.get_step("search")
    assert search.next_step_id == "answer"
    assert search.retry.max_attempts == 3
    assert search.retry.base_delay_ms == 250
    assert wf.get_step("answer").timeout_ms == 5000


def test_parse_snake_case_document():
    wf = parse_workflow({
        "id": "wf-snake",
        "entry_step_id": "a",
        "steps": [{"id": "a", "type": "echo", "next_step_id": None}],
    })
    assert wf.steps[0].id == "a"


def test_parse_rejects_non_mapping():
    with pytest.raises(WorkflowLoadError):
        parse_workflow(["not", "a", "workflow"])


def test_parse_reports_field_errors():
    with pytest.raises(WorkflowLoadError) as exc_info:
        parse_workflow({"id": "wf", "steps": [{"type": "echo"}]})
    assert exc_info.value.code == "WORKFLOW_LOAD_ERROR"
    assert len(exc_info.value.details["errors"]) == 2   # entryStepId and steps[0].id


def test_load_yaml_file(tmp_path):
    path = tmp_path / "wf.yaml"
    path.write_text(_YAML_DOC)
    wf = load_workflow(path)
    assert [s.id for s in wf.steps] == ["search", "answer"]


def test_load_json_file(tmp_path):
    path = tmp_path / "wf.json"
    path.write_text(json.dumps(yaml.safe_load(_YAML_DOC)))
    assert load_workflow(str(path)).name == "Support answer"


def test_load_missing_file(tmp_path):
    with pytest.raises(WorkflowLoadError, match="not found"):
        load_workflow(tmp_path / "missing.yaml")


def test_load_unsupported_suffix(tmp_path):
    path = tmp_path / "wf.toml"
    path.write_text("id = 'x'")
    with pytest.raises(WorkflowLoadError, match="Unsupported"):
        load_workflow(path)


def test_load_malformed_json(tmp_path):
    path = tmp_path / "wf.json"
    path.write_text("{not json")
    with pytest.raises(WorkflowLoadError, match="Cannot parse"):
        load_workflow(path)


def test_load_invalid_document_names_file(tmp_path):
    path = tmp_path / "wf.yml"
    path.write_text("id: wf\nsteps: []\n")
    with pytest.raises(WorkflowLoadError) as exc_info:
        load_workflow(path)
    assert "wf.yml" in str(exc_info.value)
    assert exc_info.value.details["errors"]


def test_dump_uses_wire_names():
    wf = Workflow(
        id="wf-dump",
        entry_step_id="a",
        steps=[WorkflowStep(id="a", type="echo", next_step_id="b"), WorkflowStep(id="b", type="echo")],
    )
    document = dump_workflow(wf)
    assert document["entryStepId"] == "a"
    assert document["steps"][0]["nextStepId"] == "b"
    assert "nextStepId" not in document["steps"][1]
    assert "maxExecutionDurationMs" not in document


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_save_then_load(tmp_path, rag_workflow, suffix):
    path = save_workflow(rag_workflow, tmp_path / f"rag{suffix}")
    assert load_workflow(path) == rag_workflow
