"""
Safe boolean expressions for conditional branching.  Never calls eval().

Pipeline: tokenize → recursive-descent parse into an explicit AST → evaluate
against a TemplateContext.

Supported syntax:
  - Literals:     'text', "text", 42, -1.5, true, false, null
  - Paths:        input.score, steps.s01.output.results[0].score
  - Comparisons:  ==  !=  >  <  >=  <=  contains  startsWith  endsWith
  - Boolean:      !expr, a && b, a || b   (&& and || share one precedence
                  level and associate left to right)
  - Grouping:     (expr)

A bare value is coerced the JavaScript way: non-empty string, non-zero
number, true, or any object/array is truthy.

``evaluate_expression`` is the only entry point the engine uses; it returns
False on any failure and never raises, because its result feeds branching.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, NamedTuple, Union

from stepflow.exceptions import ExpressionEvaluationError, TemplateResolutionError

from .template import ContextLike, _as_mapping, resolve_path

logger = logging.getLogger(__name__)

COMPARISON_OPS = ("==", "!=", ">=", "<=", ">", "<", "contains", "startsWith", "endsWith")
_WORD_OPS = ("contains", "startsWith", "endsWith")
_KEYWORDS = {"true": True, "false": False, "null": None}
_SYMBOLS = ("&&", "||", "==", "!=", ">=", "<=", ">", "<", "!", "(", ")")


# ── AST ───────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Literal:
    value: Union[str, int, float, bool, None]


@dataclass(frozen=True)
class PathRef:
    path: str


Value = Union[Literal, PathRef]


@dataclass(frozen=True)
class Comparison:
    left: Value
    op: str
    right: Value


@dataclass(frozen=True)
class Logical:
    left: "Expression"
    op: str            # "&&" or "||"
    right: "Expression"


@dataclass(frozen=True)
class Not:
    operand: "Expression"


@dataclass(frozen=True)
class ValueExpr:
    value: Value


Expression = Union[Comparison, Logical, Not, ValueExpr]


# ── Tokenizer ─────────────────────────────────────────────────────────────────


class Token(NamedTuple):
    kind: str          # "string" | "number" | "literal" | "path" | "op" | "symbol"
    value: Any
    pos: int


def _is_path_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_path_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$-.[]"


def tokenize(expression: str) -> list[Token]:
    """
    Split an expression into tokens.  Whitespace between tokens is ignored;
    whitespace and operator characters inside quoted strings are preserved.

    Raises:
        ExpressionEvaluationError: on an unterminated string or an unknown character.
    """
    tokens: list[Token] = []
    i = 0
    n = len(expression)

    while i < n:
        ch = expression[i]

        if ch.isspace():
            i += 1
            continue

        if ch in ("'", '"'):
            start = i
            i += 1
            chars: list[str] = []
            while i < n and expression[i] != ch:
                if expression[i] == "\\" and i + 1 < n:
                    i += 1
                chars.append(expression[i])
                i += 1
            if i >= n:
                raise ExpressionEvaluationError(
                    f"Unterminated string starting at position {start}",
                    expression=expression,
                )
            tokens.append(Token("string", "".join(chars), start))
            i += 1
            continue

        symbol = next((s for s in _SYMBOLS if expression.startswith(s, i)), None)
        if symbol is not None:
            kind = "op" if symbol in COMPARISON_OPS else "symbol"
            tokens.append(Token(kind, symbol, i))
            i += len(symbol)
            continue

        if ch.isdigit() or (ch == "-" and i + 1 < n and expression[i + 1].isdigit()):
            start = i
            i += 1
            while i < n and expression[i].isdigit():
                i += 1
            if i + 1 < n and expression[i] == "." and expression[i + 1].isdigit():
                i += 1
                while i < n and expression[i].isdigit():
                    i += 1
            if i < n and _is_path_start(expression[i]):
                raise ExpressionEvaluationError(
                    f"Invalid number at position {start}", expression=expression
                )
            text = expression[start:i]
            tokens.append(Token("number", float(text) if "." in text else int(text), start))
            continue

        if _is_path_start(ch):
            start = i
            while i < n and _is_path_char(expression[i]):
                i += 1
            word = expression[start:i]
            if word in _WORD_OPS:
                tokens.append(Token("op", word, start))
            elif word in _KEYWORDS:
                tokens.append(Token("literal", _KEYWORDS[word], start))
            else:
                tokens.append(Token("path", word, start))
            continue

        raise ExpressionEvaluationError(
            f"Unexpected character {ch!r} at position {i}", expression=expression
        )

    return tokens


# ── Parser ────────────────────────────────────────────────────────────────────


class _Parser:
    def __init__(self, tokens: list[Token], expression: str):
        self.tokens = tokens
        self.expression = expression
        self.index = 0

    def _peek(self) -> Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise self._error("Unexpected end of expression")
        self.index += 1
        return token

    def _error(self, message: str) -> ExpressionEvaluationError:
        return ExpressionEvaluationError(message, expression=self.expression)

    def parse(self) -> Expression:
        if not self.tokens:
            raise self._error("Empty expression")
        node = self._logical()
        trailing = self._peek()
        if trailing is not None:
            raise self._error(f"Unexpected token {trailing.value!r} at position {trailing.pos}")
        return node

    def _logical(self) -> Expression:
        left = self._unary()
        while True:
            token = self._peek()
            if token is None or token.kind != "symbol" or token.value not in ("&&", "||"):
                return left
            self._advance()
            left = Logical(left, token.value, self._unary())

    def _unary(self) -> Expression:
        token = self._peek()
        if token is not None and token.kind == "symbol" and token.value == "!":
            self._advance()
            return Not(self._unary())
        return self._comparison()

    def _comparison(self) -> Expression:
        token = self._peek()
        if token is not None and token.kind == "symbol" and token.value == "(":
            self._advance()
            inner = self._logical()
            closing = self._peek()
            if closing is None or closing.kind != "symbol" or closing.value != ")":
                raise self._error("Missing closing parenthesis")
            self._advance()
            return inner

        left = self._value()
        op = self._peek()
        if op is not None and op.kind == "op":
            self._advance()
            return Comparison(left, op.value, self._value())
        return ValueExpr(left)

    def _value(self) -> Value:
        token = self._advance()
        if token.kind in ("string", "number", "literal"):
            return Literal(token.value)
        if token.kind == "path":
            return PathRef(token.value)
        raise self._error(f"Expected a value at position {token.pos}, got {token.value!r}")


def parse_expression(expression: str) -> Expression:
    """
    Parse an expression string into its AST.

    Raises:
        ExpressionEvaluationError: on any tokenize or parse failure.
    """
    if not isinstance(expression, str):
        raise ExpressionEvaluationError("Expression must be a string", expression=repr(expression))
    return _Parser(tokenize(expression), expression).parse()


# ── Evaluation ────────────────────────────────────────────────────────────────


def evaluate_expression(expression: str, context: ContextLike) -> bool:
    """
    Evaluate ``expression`` against ``context``.

    Returns False (and logs) on empty input, syntax errors or evaluation
    failures; never raises.

    Example:
        evaluate_expression(
            "input.score > 0.8 && input.count > 3",
            {"input": {"score": 0.85, "count": 5}},
        )
        → True
    """
    try:
        node = parse_expression(expression)
        return evaluate_node(node, _as_mapping(context))
    except ExpressionEvaluationError as exc:
        logger.warning(f"[Expression] {exc}; treating {expression!r} as false")
        return False
    except Exception as exc:
        logger.error(f"[Expression] Evaluation of {expression!r} crashed: {exc}", exc_info=True)
        return False


def evaluate_node(node: Expression, context: ContextLike) -> bool:
    """Evaluate a parsed expression node."""
    if isinstance(node, Comparison):
        return compare(resolve_value(node.left, context), node.op, resolve_value(node.right, context))
    if isinstance(node, Logical):
        left = evaluate_node(node.left, context)
        if node.op == "&&":
            return left and evaluate_node(node.right, context)
        return left or evaluate_node(node.right, context)
    if isinstance(node, Not):
        return not evaluate_node(node.operand, context)
    if isinstance(node, ValueExpr):
        return is_truthy(resolve_value(node.value, context))
    raise ExpressionEvaluationError(f"Unknown expression node {type(node).__name__}")


def resolve_value(value: Value, context: ContextLike) -> Any:
    """Literal value, or the path's value (None when unresolvable)."""
    if isinstance(value, Literal):
        return value.value
    try:
        return resolve_path(value.path, context)
    except TemplateResolutionError:
        return None


def compare(left: Any, op: str, right: Any) -> bool:
    """Apply one comparison operator.  Type mismatches compare false."""
    if op == "==":
        return strict_equals(left, right)
    if op == "!=":
        return not strict_equals(left, right)
    if op in (">", "<", ">=", "<="):
        if not (_is_number(left) and _is_number(right)):
            return False
        if op == ">":
            return left > right
        if op == "<":
            return left < right
        if op == ">=":
            return left >= right
        return left <= right
    if op in _WORD_OPS:
        if not (isinstance(left, str) and isinstance(right, str)):
            return False
        if op == "contains":
            return right in left
        if op == "startsWith":
            return left.startswith(right)
        return left.endswith(right)
    raise ExpressionEvaluationError(f"Unsupported comparison operator: {op}")


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion: ``1 == true`` is false, ``null == null`` is true."""
    left_kind, right_kind = _kind(left), _kind(right)
    if left_kind != right_kind:
        return False
    if left_kind == "object":
        return left is right
    return left == right


def is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"
