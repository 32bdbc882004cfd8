"""Logic-less ``{{ }}`` templates resolved against a workflow context.

Supported forms:

- ``{{path.to.value}}`` inlines a value. Strings go in as-is, dicts and lists
  as JSON, missing values as an empty string.
- ``{{{path}}}`` is the same, kept for templates written for raw output.
- ``{{json path}}`` inlines the value serialized as JSON.

Any other helper-style expression renders empty.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from ..workflow.errors import TemplateResolutionError

_MISSING = object()


def render(template: Any, context: Mapping[str, Any]) -> str:
    if not isinstance(template, str):
        raise TemplateResolutionError(
            f"Template must be a string, got {type(template).__name__}"
        )

    out: list[str] = []
    pos = 0
    while True:
        start = template.find("{{", pos)
        if start == -1:
            out.append(template[pos:])
            break
        out.append(template[pos:start])

        if template.startswith("{{{", start):
            close, open_len, close_len = "}}}", 3, 3
        else:
            close, open_len, close_len = "}}", 2, 2

        end = template.find(close, start + open_len)
        if end == -1:
            raise TemplateResolutionError(
                f"Unterminated expression at position {start}: {template[start:start + 20]!r}"
            )

        expression = template[start + open_len:end].strip()
        if not expression:
            raise TemplateResolutionError(f"Empty expression at position {start}")

        out.append(_evaluate(expression, context))
        pos = end + close_len

    return "".join(out)


def _evaluate(expression: str, context: Mapping[str, Any]) -> str:
    parts = expression.split()
    if len(parts) == 1:
        return _to_text(lookup(context, parts[0]))
    if parts[0] == "json" and len(parts) == 2:
        value = lookup(context, parts[1])
        return json.dumps(None if value is _MISSING else value, default=str)
    return ""


def lookup(context: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path through nested mappings and lists."""
    if path == "this":
        return dict(context)
    current: Any = context
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def _to_text(value: Any) -> str:
    if value is _MISSING or value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, default=str)
    return str(value)
