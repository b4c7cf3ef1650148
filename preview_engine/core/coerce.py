"""
Text -> value coercion for function test arguments and context text.

The function editor collects argument values as plain text. Literals are
detected in order: true/false/null, numbers, JSON object/array; anything else
(including malformed JSON) stays a string.
"""

from __future__ import annotations

import json
import re
from typing import Any

from preview_engine.models import VariableNode, VariableTypeEnum

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_INT_RE = re.compile(r"^[+-]?\d+$")

_LITERALS: dict[str, Any] = {"true": True, "false": False, "null": None}


def _coerce_number(s: str) -> int | float | None:
    if _INT_RE.match(s):
        return int(s)
    if _NUMBER_RE.match(s):
        return float(s)
    return None


def coerce_test_argument(raw: Any) -> Any:
    """Coerce one raw text argument; non-strings are returned unchanged."""
    if not isinstance(raw, str):
        return raw
    if raw in _LITERALS:
        return _LITERALS[raw]
    s = raw.strip()
    if s:
        number = _coerce_number(s)
        if number is not None:
            return number
    if raw.startswith(("{", "[")):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            pass
    return raw


def parse_context(text: str | None) -> tuple[dict[str, Any], str | None]:
    """
    Parse context JSON text. On error (or a non-object), fall back to {} and
    return the message so the editor can show it.
    """
    if text is None or not text.strip():
        return {}, None
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        return {}, str(e)
    if not isinstance(value, dict):
        return {}, f"Context must be a JSON object, got {_json_type(value).value}"
    return value, None


def _json_type(value: Any) -> VariableTypeEnum:
    if value is None:
        return VariableTypeEnum.NULL
    if isinstance(value, bool):
        return VariableTypeEnum.BOOLEAN
    if isinstance(value, (int, float)):
        return VariableTypeEnum.NUMBER
    if isinstance(value, dict):
        return VariableTypeEnum.OBJECT
    if isinstance(value, (list, tuple)):
        return VariableTypeEnum.ARRAY
    return VariableTypeEnum.STRING


def _child_path(parent: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{parent}[{key}]"
    if key.isidentifier():
        return f"{parent}.{key}" if parent else key
    # Names with spaces etc. use bracket notation, as in templates
    return f"{parent}.[{key}]" if parent else f"[{key}]"


def build_variable_tree(value: Any, *, path: str = "") -> list[VariableNode]:
    """Tree of VariableNodes for a mapping or sequence (one node per entry)."""
    if isinstance(value, dict):
        items: list[tuple[str | int, Any]] = list(value.items())
    elif isinstance(value, (list, tuple)):
        items = list(enumerate(value))
    else:
        return []

    nodes: list[VariableNode] = []
    for key, child in items:
        child_path = _child_path(path, key)
        kind = _json_type(child)
        container = kind in (VariableTypeEnum.OBJECT, VariableTypeEnum.ARRAY)
        nodes.append(
            VariableNode(
                key=str(key),
                path=child_path,
                type=kind,
                value=None if container else child,
                children=build_variable_tree(child, path=child_path) if container else None,
            )
        )
    return nodes
