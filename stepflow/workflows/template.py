"""
Template resolution for ``{{path.to.value}}`` placeholders.

Placeholders are resolved left to right against the three context roots
(``input``, ``steps``, ``context``).  Paths are a dot/bracket grammar:

    steps.s01.output.results[0].text

Nothing here executes code.  A placeholder that cannot be resolved is left in
the output unchanged and the failure is logged; the public resolve functions
never raise for bad paths.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Union

from stepflow.exceptions import TemplateResolutionError
from stepflow.types import TemplateContext

logger = logging.getLogger(__name__)

CONTEXT_ROOTS = ("input", "steps", "context")

_PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")
_NAME_RE = re.compile(r"[^.\[\]\s]+")
_INDEX_RE = re.compile(r"\[(\d+)\]")

ContextLike = Union[TemplateContext, Mapping[str, Any]]


# ── Paths ─────────────────────────────────────────────────────────────────────


def parse_path(path: str) -> list[tuple[str, Union[str, int]]]:
    """
    Split a path into ``("key", name)`` and ``("index", n)`` segments.

    Raises:
        TemplateResolutionError: on empty paths, malformed brackets, negative
            or non-integer indexes, or a first segment that is not a root.
    """
    text = path.strip()
    if not text:
        raise TemplateResolutionError("Empty template path", template=path)

    segments: list[tuple[str, Union[str, int]]] = []
    pos = 0
    while pos < len(text):
        if pos == 0:
            match = _NAME_RE.match(text, pos)
            kind = "key"
        elif text[pos] == ".":
            match = _NAME_RE.match(text, pos + 1)
            kind = "key"
        elif text[pos] == "[":
            match = _INDEX_RE.match(text, pos)
            kind = "index"
        else:
            match = None
            kind = ""

        if match is None:
            raise TemplateResolutionError(
                f"Malformed path {path!r} at position {pos}", template=path
            )
        if kind == "key":
            segments.append(("key", match.group(0)))
        else:
            segments.append(("index", int(match.group(1))))
        pos = match.end()

    root = segments[0][1]
    if root not in CONTEXT_ROOTS:
        raise TemplateResolutionError(
            f"Path {path!r} must start with one of {', '.join(CONTEXT_ROOTS)}",
            template=path,
        )
    return segments


def resolve_path(path: str, context: ContextLike) -> Any:
    """
    Walk ``path`` through ``context`` and return the value found.

    A missing key or an out-of-range index yields ``None``.  Accessing a
    property of ``None`` or of a non-mapping, or indexing a non-list, raises.

    Raises:
        TemplateResolutionError: when the path is malformed or cannot be walked.
    """
    current: Any = _as_mapping(context)
    for kind, key in parse_path(path):
        if kind == "key":
            if current is None:
                raise TemplateResolutionError(
                    f"Cannot read property {key!r} of null in {path!r}", template=path
                )
            if not isinstance(current, Mapping):
                raise TemplateResolutionError(
                    f"Cannot read property {key!r} of {type(current).__name__} in {path!r}",
                    template=path,
                )
            current = current.get(key)
        else:
            if not isinstance(current, (list, tuple)):
                raise TemplateResolutionError(
                    f"Cannot index {type(current).__name__} with [{key}] in {path!r}",
                    template=path,
                )
            current = current[key] if key < len(current) else None
    return current


# ── Formatting ────────────────────────────────────────────────────────────────


def format_value(value: Any) -> str:
    """Render a resolved value for string interpolation."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return _js_exponent(repr(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def _js_exponent(text: str) -> str:
    """``1e-07`` -> ``1e-7``, ``1e+21`` unchanged."""
    if "e" not in text:
        return text
    mantissa, exponent = text.split("e")
    sign = "-" if exponent.startswith("-") else "+"
    return f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"


# ── Public API ────────────────────────────────────────────────────────────────


def resolve_template(template: str, context: ContextLike) -> str:
    """
    Replace every ``{{path}}`` in ``template`` with its formatted value.

    Unresolvable placeholders are kept verbatim.

    Example:
        resolve_template("Q: {{input.question}}", {"input": {"question": "X"}})
        → "Q: X"
    """
    mapping = _as_mapping(context)

    def _substitute(match: re.Match) -> str:  # type: ignore[type-arg]
        path = match.group(1).strip()
        try:
            return format_value(resolve_path(path, mapping))
        except TemplateResolutionError as exc:
            logger.warning(f"[Template] Leaving {match.group(0)!r} unresolved: {exc}")
            return match.group(0)

    return _PLACEHOLDER_RE.sub(_substitute, template)


def resolve_object(value: Any, context: ContextLike) -> Any:
    """Resolve every string leaf of a nested dict/list structure; other leaves are returned as-is."""
    mapping = _as_mapping(context)
    if isinstance(value, str):
        return resolve_template(value, mapping)
    if isinstance(value, Mapping):
        return {k: resolve_object(v, mapping) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_object(item, mapping) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve_object(item, mapping) for item in value)
    return value


def has_placeholders(text: str) -> bool:
    """Return True if ``text`` contains at least one ``{{...}}`` placeholder."""
    return bool(_PLACEHOLDER_RE.search(text))


def extract_placeholders(text: str) -> list[str]:
    """Return every placeholder path in ``text``, trimmed, in order, duplicates included."""
    return [m.group(1).strip() for m in _PLACEHOLDER_RE.finditer(text)]


def _as_mapping(context: ContextLike) -> Mapping[str, Any]:
    if isinstance(context, TemplateContext):
        return context.as_mapping()
    return context
