"""
Missing-reference scanner: function names a template calls but the function
set does not define.

Two patterns are scanned independently:

* shorthand ``{{#func:NAME(``
* legacy helper form ``{{ func 'NAME'`` / ``{{ func "NAME"``

Read-only and advisory; a clean scan does not mean the template renders.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from preview_engine.models import FunctionDefinition

SHORTHAND_REF_RE = re.compile(r"\{\{\s*#func:([a-zA-Z0-9_]+)\s*\(")
LEGACY_REF_RE = re.compile(r"\{\{\s*func\s+['\"]([a-zA-Z0-9_]+)['\"]")


def _defined_names(functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None) -> set[str]:
    names: set[str] = set()
    for f in functions or ():
        name = f.get("name") if isinstance(f, Mapping) else f.name
        if isinstance(name, str):
            names.add(name)
    return names


def find_function_references(template: str) -> set[str]:
    """Every function name referenced through either call pattern."""
    refs = set(SHORTHAND_REF_RE.findall(template))
    refs.update(LEGACY_REF_RE.findall(template))
    return refs


def scan_missing_functions(
    template: str,
    functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
) -> set[str]:
    """Names referenced in *template* that are absent from *functions*."""
    return find_function_references(template) - _defined_names(functions)
