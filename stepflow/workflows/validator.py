"""
WorkflowValidator — structural correctness checker for Workflow definitions.

All checks are non-destructive reads of the workflow graph.  Hard errors make
the workflow invalid; warnings are informational and never affect validity.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Optional

from stepflow.exceptions import WorkflowValidationError
from stepflow.types import StepType, ValidationResult, Workflow

from .graph import branch_targets, find_cycles, find_reachable, get_outgoing

if TYPE_CHECKING:
    from .registry import StepRegistry


class WorkflowValidator:
    """
    Validates the structural integrity of a Workflow.

    Usage::

        validator = WorkflowValidator()
        result = validator.validate(workflow, registry=registry)
        if not result.valid:
            print(result.errors)

    All checks are run even if earlier ones fail, so callers get the full
    error list in one shot.  The validator holds no state: validating the same
    workflow twice yields equal results.
    """

    def validate(
        self,
        workflow: Workflow,
        registry: Optional["StepRegistry"] = None,
    ) -> ValidationResult:
        """
        Run all structural checks on a Workflow.

        Args:
            workflow: The workflow to validate.
            registry: Optional StepRegistry; when given, steps whose type has
                      no registered handler are reported as warnings.

        Returns:
            ValidationResult; ``valid`` is True iff ``errors`` is empty.
        """
        errors: list[str] = []
        warnings: list[str] = []
        steps = workflow.steps
        step_ids = {s.id for s in steps}

        # ── Check 1: Step list and step count limit ───────────────────────────
        if not steps:
            errors.append("Workflow must have at least one step.")
        if len(steps) > workflow.max_steps:
            errors.append(
                f"Workflow has {len(steps)} steps; maximum allowed is {workflow.max_steps}."
            )

        # ── Check 2: Duplicate ids ────────────────────────────────────────────
        duplicates = [sid for sid, count in Counter(s.id for s in steps).items() if count > 1]
        if duplicates:
            errors.append(f"Duplicate step ids found: {', '.join(duplicates)}.")

        # ── Check 3: Entry step ───────────────────────────────────────────────
        if workflow.entry_step_id not in step_ids:
            errors.append(
                f"Entry step '{workflow.entry_step_id}' referenced by entryStepId "
                "does not exist."
            )

        # ── Check 4: Dangling references ──────────────────────────────────────
        for step in steps:
            for edge_name, target in get_outgoing(step):
                if target not in step_ids:
                    errors.append(
                        f"Step '{step.id}': {edge_name} references a step that does "
                        f"not exist ('{target}')."
                    )

        # ── Check 4b: Condition steps need a true branch ─────────────────────
        for step in steps:
            if step.type == StepType.CONDITION and branch_targets(step)[0] is None:
                errors.append(f"Condition step '{step.id}' has no onTrue target.")

        # ── Check 5: Cycles reachable from the entry ──────────────────────────
        for cycle in find_cycles(workflow):
            errors.append(f"Circular reference detected: {' -> '.join(cycle)}.")

        # ── Check 6: Reachability ─────────────────────────────────────────────
        if workflow.entry_step_id in step_ids:
            reachable = find_reachable(workflow)
            unreachable: list[str] = []
            for step in steps:
                if step.id not in reachable and step.id not in unreachable:
                    unreachable.append(step.id)
            for step_id in unreachable:
                errors.append(
                    f"Step '{step_id}' is unreachable from entry step "
                    f"'{workflow.entry_step_id}'."
                )

        # ── Warnings ──────────────────────────────────────────────────────────
        for step in steps:
            if step.type == StepType.CONDITION:
                if branch_targets(step)[1] is None:
                    warnings.append(
                        f"Condition step '{step.id}' has no onFalse target; a false "
                        "result ends the run."
                    )
            elif step.on_success and step.next_step_id and step.on_success != step.next_step_id:
                warnings.append(
                    f"Step '{step.id}' sets both onSuccess and nextStepId; onSuccess "
                    "takes precedence."
                )

        if registry is not None:
            for step in steps:
                if not registry.has(step.type):
                    warnings.append(
                        f"Step '{step.id}': no handler registered for type '{step.type}'."
                    )

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def validate_or_raise(
        self,
        workflow: Workflow,
        registry: Optional["StepRegistry"] = None,
    ) -> ValidationResult:
        """
        Validate and raise on hard errors.

        Raises:
            WorkflowValidationError: with every hard error in ``violations``.
        """
        result = self.validate(workflow, registry=registry)
        if not result.valid:
            raise WorkflowValidationError(
                f"Workflow '{workflow.id}' validation failed: {'; '.join(result.errors)}",
                violations=result.errors,
                details={"warnings": result.warnings},
            )
        return result
