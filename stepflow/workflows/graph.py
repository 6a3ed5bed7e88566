"""
Graph utilities over a workflow's steps.

Edges are not stored separately: each step carries its own outgoing references
(``next_step_id``, ``on_success``, ``on_failure``) and conditional steps keep
their branch targets in ``params``.  Everything here is pure so the validator,
builder and executor can share it.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Optional

from stepflow.types import StepType, Workflow, WorkflowStep


# ── Edge helpers ──────────────────────────────────────────────────────────────


def branch_targets(step: WorkflowStep) -> tuple[Optional[str], Optional[str]]:
    """Return ``(on_true, on_false)`` of a conditional step; ``(None, None)`` otherwise.

    Both the wire spelling (``onTrue``) and the Python spelling (``on_true``)
    are accepted.
    """
    if step.type != StepType.CONDITION:
        return None, None
    params = step.params or {}
    on_true = params.get("onTrue", params.get("on_true"))
    on_false = params.get("onFalse", params.get("on_false"))
    return _as_ref(on_true), _as_ref(on_false)


def get_outgoing(step: WorkflowStep) -> list[tuple[str, str]]:
    """Return ``(edge_name, target_id)`` for every outgoing reference, in a fixed order."""
    edges: list[tuple[str, str]] = []
    if step.next_step_id:
        edges.append(("nextStepId", step.next_step_id))
    if step.on_success:
        edges.append(("onSuccess", step.on_success))
    if step.on_failure:
        edges.append(("onFailure", step.on_failure))
    on_true, on_false = branch_targets(step)
    if on_true:
        edges.append(("onTrue", on_true))
    if on_false:
        edges.append(("onFalse", on_false))
    return edges


def get_children(step: WorkflowStep) -> list[str]:
    """Target ids of all outgoing edges, de-duplicated, order preserved."""
    seen: list[str] = []
    for _, target in get_outgoing(step):
        if target not in seen:
            seen.append(target)
    return seen


def step_index(steps: Iterable[WorkflowStep]) -> dict[str, WorkflowStep]:
    """Map id → step.  With duplicate ids the first occurrence wins."""
    index: dict[str, WorkflowStep] = {}
    for step in steps:
        index.setdefault(step.id, step)
    return index


def get_exit_points(workflow: Workflow) -> list[str]:
    """Steps with no outgoing edge; reaching one ends the run normally."""
    return [s.id for s in workflow.steps if not get_outgoing(s)]


# ── Traversals ────────────────────────────────────────────────────────────────


def find_reachable(workflow: Workflow) -> set[str]:
    """Breadth-first traversal from the entry step over every edge type."""
    index = step_index(workflow.steps)
    reachable: set[str] = set()
    queue: deque[str] = deque([workflow.entry_step_id])
    while queue:
        step_id = queue.popleft()
        if step_id in reachable:
            continue
        reachable.add(step_id)
        step = index.get(step_id)
        if step is not None:
            queue.extend(get_children(step))
    return reachable


def find_cycles(workflow: Workflow) -> list[list[str]]:
    """
    Depth-first traversal from the entry step with a recursion stack.

    Every time an edge leads back to a step already on the stack, the path
    from the entry to that revisit is recorded (e.g. ``[a, b, c, a]``) and the
    traversal carries on with the remaining edges.  Steps already fully
    explored are not re-entered.
    """
    index = step_index(workflow.steps)
    cycles: list[list[str]] = []
    visited: set[str] = set()
    on_stack: set[str] = set()

    entry = workflow.entry_step_id
    if entry not in index:
        return cycles

    # Each frame: (step_id, iterator over its children)
    path: list[str] = [entry]
    stack = [(entry, iter(get_children(index[entry])))]
    visited.add(entry)
    on_stack.add(entry)

    while stack:
        step_id, children = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            path.pop()
            on_stack.discard(step_id)
            continue
        if child in on_stack:
            cycles.append(path + [child])
            continue
        if child in visited or child not in index:
            continue
        visited.add(child)
        on_stack.add(child)
        path.append(child)
        stack.append((child, iter(get_children(index[child]))))

    return cycles


def _as_ref(value: object) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None
