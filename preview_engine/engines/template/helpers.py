"""
Helper registry: named callables exposed to templates.

A HelperRegistry is built per render; nothing is shared between calls, so
helpers from an unrelated function set never leak into a later render.

Registration order (later wins on name clashes): built-ins, the ``func``
dispatcher, then one direct helper per user function.
"""

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from preview_engine.core.budget import ExecutionBudgetExceeded
from preview_engine.engines.functions.compiler import (
    CompiledFunction,
    compile_function,
    index_functions,
    normalize_functions,
)
from preview_engine.engines.template.errors import MissingHelperError
from preview_engine.engines.template.filters import (
    SQL_HELPERS,
    display_value,
    truthy,
)
from preview_engine.models import FunctionDefinition

_log = logging.getLogger(__name__)

DISPATCHER_NAME = "func"


# ---------------------------------------------------------------------------
# Built-in helpers
# ---------------------------------------------------------------------------


def _to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return 0.0
        try:
            return float(s)
        except ValueError:
            return float("nan")
    return float("nan")


def _uppercase(value: Any = None) -> str:
    return display_value(value if truthy(value) else "").upper()


def _lowercase(value: Any = None) -> str:
    return display_value(value if truthy(value) else "").lower()


def _split(value: Any = None, separator: Any = None) -> list[str]:
    if not isinstance(value, str):
        return []
    if separator is None:
        return [value]
    if separator == "":
        return list(value)
    return value.split(str(separator))


def _join(value: Any = None, separator: Any = None) -> Any:
    if not isinstance(value, (list, tuple)):
        return value
    sep = "," if separator is None else display_value(separator)
    return sep.join(display_value(v) for v in value)


def _first(value: Any = None) -> Any:
    if not isinstance(value, (list, tuple)):
        return value
    return value[0] if value else None


def _last(value: Any = None) -> Any:
    if not isinstance(value, (list, tuple)):
        return value
    return value[-1] if value else None


def _json(value: Any = None) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


BUILTIN_HELPERS: dict[str, Callable[..., Any]] = {
    "uppercase": _uppercase,
    "lowercase": _lowercase,
    "split": _split,
    "join": _join,
    "first": _first,
    "last": _last,
    "json": _json,
    # Logical
    "eq": lambda a=None, b=None: a == b,
    "ne": lambda a=None, b=None: a != b,
    "lt": lambda a=None, b=None: _to_number(a) < _to_number(b),
    "gt": lambda a=None, b=None: _to_number(a) > _to_number(b),
    "lte": lambda a=None, b=None: _to_number(a) <= _to_number(b),
    "gte": lambda a=None, b=None: _to_number(a) >= _to_number(b),
    "and": lambda *args: all(truthy(a) for a in args),
    "or": lambda *args: any(truthy(a) for a in args),
    "not": lambda value=None: not truthy(value),
}
BUILTIN_HELPERS.update(SQL_HELPERS)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def not_found_placeholder(name: str) -> str:
    return f"[Function '{name}' not found]"


def error_placeholder(name: str, error: BaseException) -> str:
    return f"[Error in '{name}': {error_message(error)}]"


def error_message(error: BaseException) -> str:
    """str(error), or the class name when the message is empty."""
    return str(error) or type(error).__name__


class HelperRegistry:
    """
    Per-call helper table for one function set.

    ``call(name, *args)`` invokes a registered helper; ``dispatch`` is the
    ``func`` helper that resolves a user function by name and localizes its
    failures into placeholder strings.
    """

    def __init__(
        self,
        functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
        *,
        builtins: Mapping[str, Callable[..., Any]] | None = None,
    ) -> None:
        self._definitions = index_functions(normalize_functions(functions))
        self._compiled: dict[str, CompiledFunction] = {}
        self._compile_errors: dict[str, Exception] = {}
        self._helpers: dict[str, Callable[..., Any]] = {}

        self._helpers.update(BUILTIN_HELPERS if builtins is None else builtins)
        self._helpers[DISPATCHER_NAME] = self.dispatch
        for name, fdef in self._definitions.items():
            try:
                compiled = compile_function(fdef.params, fdef.body, name=name)
            except Exception as e:
                _log.error("Failed to register helper %s: %s", name, e)
                self._compile_errors[name] = e
                continue
            self._compiled[name] = compiled
            self._helpers[name] = compiled

    def __contains__(self, name: object) -> bool:
        return name in self._helpers

    def names(self) -> frozenset[str]:
        return frozenset(self._helpers)

    def register(self, name: str, fn: Callable[..., Any]) -> None:
        """Add or replace a helper (last write wins)."""
        self._helpers[name] = fn

    def call(self, name: str, *args: Any) -> Any:
        """Invoke helper *name*. Errors propagate (a direct helper failing fails the render)."""
        fn = self._helpers.get(name)
        if fn is None:
            raise MissingHelperError(name)
        return fn(*args)

    def dispatch(self, name: Any = None, *args: Any) -> Any:
        """
        ``{{ func 'name' a b }}``: run user function *name* with *args*.

        Unknown name -> ``[Function 'name' not found]``; compile or runtime
        error -> ``[Error in 'name': message]``. A blown execution budget is
        re-raised so the whole render stops.
        """
        key = display_value(name)
        if key not in self._definitions:
            return not_found_placeholder(key)
        if key in self._compile_errors:
            return error_placeholder(key, self._compile_errors[key])
        try:
            return self._compiled[key].invoke(args)
        except (ExecutionBudgetExceeded, KeyboardInterrupt):
            raise
        except BaseException as e:
            _log.debug("Function %s raised: %s", key, e)
            return error_placeholder(key, e)
