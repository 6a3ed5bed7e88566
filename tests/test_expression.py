"""Tests for the safe condition expression language."""

import logging

import pytest

from stepflow.exceptions import ExpressionEvaluationError
from stepflow.types import TemplateContext
from stepflow.workflows.expression import (
    Comparison,
    Logical,
    Not,
    PathRef,
    evaluate_expression,
    is_truthy,
    parse_expression,
    strict_equals,
    tokenize,
)


@pytest.fixture
def ctx():
    return {
        "input": {
            "score": 0.85,
            "count": 5,
            "tier": "gold",
            "name": "",
            "flag": False,
            "n": 1,
            "items": [],
            "email": "ada@example.com",
        },
        "steps": {"search": {"output": {"count": 2, "results": [{"score": 0.7}]}}},
        "context": {"tenant_id": "tenant-a"},
    }


# ── Evaluation ───────────────────────────────────────────────────────────────


def test_conjunction_of_comparisons(ctx):
    assert evaluate_expression("input.score > 0.8 && input.count > 3", ctx) is True


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("input.count == 5", True),
        ("input.count != 5", False),
        ("input.count >= 5", True),
        ("input.count <= 4", False),
        ("input.count < 10", True),
        ("input.tier == 'gold'", True),
        ('input.tier == "silver"', False),
        ("input.email contains '@example'", True),
        ("input.email startsWith 'ada'", True),
        ("input.email endsWith '.org'", False),
        ("steps.search.output.count > 0", True),
        ("steps.search.output.results[0].score >= 0.5", True),
        ("context.tenant_id == 'tenant-a'", True),
        ("input.score > -1", True),
    ],
)
def test_comparisons(ctx, expression, expected):
    assert evaluate_expression(expression, ctx) is expected


def test_negation_and_grouping(ctx):
    assert evaluate_expression("!input.flag", ctx) is True
    assert evaluate_expression("!(input.count > 3)", ctx) is False
    assert evaluate_expression("(input.count > 3 || input.flag) && input.tier == 'gold'", ctx) is True


def test_and_or_share_precedence_left_to_right(ctx):
    # ((true || false) && false)
    assert evaluate_expression("true || false && false", ctx) is False
    # ((false && false) || true)
    assert evaluate_expression("false && false || true", ctx) is True


def test_no_cross_type_coercion(ctx):
    assert evaluate_expression("input.n == true", ctx) is False
    assert evaluate_expression("input.count == '5'", ctx) is False
    assert evaluate_expression("input.tier > 3", ctx) is False
    assert evaluate_expression("input.count contains '5'", ctx) is False


def test_missing_values_are_null(ctx):
    assert evaluate_expression("input.missing == null", ctx) is True
    assert evaluate_expression("input.missing", ctx) is False
    assert evaluate_expression("input.missing > 1", ctx) is False


def test_bare_values_use_truthiness(ctx):
    assert evaluate_expression("input.count", ctx) is True
    assert evaluate_expression("input.name", ctx) is False
    # empty containers are truthy
    assert evaluate_expression("input.items", ctx) is True


@pytest.mark.parametrize(
    "expression",
    ["", "   ", "input.score >", "(input.count > 3", "input.count > 3 )", "input.a == 1 2", "input.a = 1", "#"],
)
def test_malformed_expressions_evaluate_false(ctx, expression, caplog):
    with caplog.at_level(logging.WARNING, logger="stepflow.workflows.expression"):
        assert evaluate_expression(expression, ctx) is False


def test_accepts_template_context():
    tc = TemplateContext(input={"score": 0.9})
    assert evaluate_expression("input.score > 0.8", tc) is True


def test_short_circuit_skips_right_side(ctx):
    # Right side would be a type mismatch; never matters, result decided by left
    assert evaluate_expression("input.count > 3 || input.tier > 1", ctx) is True


# ── Parsing ──────────────────────────────────────────────────────────────────


def test_parse_builds_ast():
    node = parse_expression("!a.b && c.d == 1")
    assert isinstance(node, Logical)
    assert node.op == "&&"
    assert isinstance(node.left, Not)
    assert node.left.operand.value == PathRef("a.b")
    assert isinstance(node.right, Comparison)
    assert node.right.op == "=="


def test_parse_errors_raise():
    with pytest.raises(ExpressionEvaluationError):
        parse_expression("a ==")
    with pytest.raises(ExpressionEvaluationError):
        parse_expression("'unterminated")


def test_tokenize_keeps_operators_inside_strings():
    tokens = tokenize("input.note == 'a && b || !c'")
    assert [t.kind for t in tokens] == ["path", "op", "string"]
    assert tokens[2].value == "a && b || !c"


def test_tokenize_numbers():
    values = [t.value for t in tokenize("1 2.5 -3")]
    assert values == [1, 2.5, -3]


# ── Helpers ──────────────────────────────────────────────────────────────────


def test_strict_equals():
    assert strict_equals(None, None)
    assert strict_equals(1, 1.0)
    assert not strict_equals(1, True)
    assert not strict_equals("1", 1)
    assert not strict_equals([1], [1])


@pytest.mark.parametrize(
    "value, expected",
    [(None, False), (0, False), (0.0, False), ("", False), (False, False),
     (1, True), ("x", True), ({}, True), ([], True), (True, True)],
)
def test_is_truthy(value, expected):
    assert is_truthy(value) is expected
