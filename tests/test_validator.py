"""Tests for WorkflowValidator structural checks."""

import pytest

from stepflow.exceptions import WorkflowValidationError
from stepflow.types import Workflow, WorkflowStep
from stepflow.workflows.registry import StepRegistry
from stepflow.workflows.validator import WorkflowValidator

from tests.helpers import EchoHandler


@pytest.fixture
def validator():
    return WorkflowValidator()


def _wf(entry, *steps, **kwargs):
    return Workflow(id="wf-val", entry_step_id=entry, steps=list(steps), **kwargs)


def test_valid_linear_workflow(validator, linear_workflow):
    result = validator.validate(linear_workflow)
    assert result.valid
    assert result.errors == []


def test_empty_workflow(validator):
    result = validator.validate(_wf("s1"))
    assert not result.valid
    assert "Workflow must have at least one step." in result.errors


def test_too_many_steps(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo", next_step_id="b"),
        WorkflowStep(id="b", type="echo"),
        max_steps=1,
    )
    result = validator.validate(wf)
    assert "Workflow has 2 steps; maximum allowed is 1." in result.errors


def test_duplicate_ids(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo", next_step_id="b"),
        WorkflowStep(id="b", type="echo"),
        WorkflowStep(id="b", type="echo"),
    )
    result = validator.validate(wf)
    assert not result.valid
    assert "Duplicate step ids found: b." in result.errors


def test_missing_entry_step(validator):
    result = validator.validate(_wf("nope", WorkflowStep(id="a", type="echo")))
    assert not result.valid
    assert any("Entry step 'nope'" in e for e in result.errors)


def test_dangling_references(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo", next_step_id="ghost", on_failure="phantom"),
    )
    result = validator.validate(wf)
    assert "Step 'a': nextStepId references a step that does not exist ('ghost')." in result.errors
    assert "Step 'a': onFailure references a step that does not exist ('phantom')." in result.errors


def test_dangling_condition_branch(validator):
    wf = _wf(
        "c",
        WorkflowStep(id="c", type="condition", params={"expression": "true", "onTrue": "ghost"}),
    )
    result = validator.validate(wf)
    assert any("onTrue references a step that does not exist ('ghost')" in e for e in result.errors)


def test_cycle_detected(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo", next_step_id="b"),
        WorkflowStep(id="b", type="echo", next_step_id="a"),
    )
    result = validator.validate(wf)
    assert not result.valid
    assert "Circular reference detected: a -> b -> a." in result.errors


def test_unreachable_step(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo"),
        WorkflowStep(id="island", type="echo"),
    )
    result = validator.validate(wf)
    assert not result.valid
    assert "Step 'island' is unreachable from entry step 'a'." in result.errors


def test_all_errors_reported_together(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo", next_step_id="a"),
        WorkflowStep(id="b", type="echo", next_step_id="ghost"),
    )
    result = validator.validate(wf)
    assert len(result.errors) == 3   # dangling, cycle, unreachable


def test_condition_warnings(validator):
    wf = _wf(
        "c",
        WorkflowStep(id="c", type="condition", params={"expression": "true", "onTrue": "t"}),
        WorkflowStep(id="t", type="echo"),
    )
    result = validator.validate(wf)
    assert result.valid
    assert result.warnings == ["Condition step 'c' has no onFalse target; a false result ends the run."]


def test_condition_without_on_true_is_invalid(validator):
    wf = _wf(
        "c",
        WorkflowStep(id="c", type="condition", params={"expression": "true", "onFalse": "f"}),
        WorkflowStep(id="f", type="echo"),
    )
    result = validator.validate(wf)
    assert not result.valid
    assert result.errors == ["Condition step 'c' has no onTrue target."]


def test_conflicting_links_warning(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo", next_step_id="b", on_success="c"),
        WorkflowStep(id="b", type="echo"),
        WorkflowStep(id="c", type="echo"),
    )
    result = validator.validate(wf)
    assert result.valid
    assert any("onSuccess takes precedence" in w for w in result.warnings)


def test_unregistered_type_warning(validator, linear_workflow):
    registry = StepRegistry()
    result = validator.validate(linear_workflow, registry=registry)
    assert result.valid
    assert len(result.warnings) == 3

    registry.register("echo", EchoHandler())
    assert validator.validate(linear_workflow, registry=registry).warnings == []


def test_validation_is_idempotent(validator):
    wf = _wf(
        "a",
        WorkflowStep(id="a", type="echo", next_step_id="b"),
        WorkflowStep(id="b", type="echo", next_step_id="a"),
        WorkflowStep(id="c", type="echo"),
    )
    assert validator.validate(wf) == validator.validate(wf)


def test_validate_or_raise(validator):
    wf = _wf("a", WorkflowStep(id="a", type="echo", next_step_id="ghost"))
    with pytest.raises(WorkflowValidationError) as exc_info:
        validator.validate_or_raise(wf)
    assert exc_info.value.code == "WORKFLOW_VALIDATION_ERROR"
    assert len(exc_info.value.violations) == 1


def test_validate_or_raise_returns_result_when_valid(validator, linear_workflow):
    assert validator.validate_or_raise(linear_workflow).valid
