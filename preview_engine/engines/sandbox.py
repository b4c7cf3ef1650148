"""
RestrictedPython sandbox shared by user functions (template helpers) and scripts.

Allowed: dict, list, str, int, float, bool, range, enumerate, zip, sorted,
len, round, min, max, sum, abs, json.loads/dumps, math,
datetime/date/time/timedelta, and whatever the caller injects (ctx, log,
user functions).

Blocked: open, exec, eval, __import__, compile, os, subprocess, attribute
names starting with '_', etc.
"""

import builtins
import importlib
import json
import logging
import math
import operator
import re
from datetime import date, datetime, time, timedelta
from typing import Any

from RestrictedPython import compile_restricted
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)

from preview_engine.core.config import settings

_log = logging.getLogger(__name__)

# Only allow top-level module names (e.g. math, statistics), no submodules
_SAFE_MODULE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Builtins also bound as plain globals so scripts and functions can call them
_GLOBAL_BUILTINS = (
    "list", "dict", "set", "tuple", "len", "range", "min", "max", "sum", "abs",
    "sorted", "enumerate", "reversed", "any", "all", "map", "filter",
)

_INPLACE_OPS: dict[str, Any] = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
    "|=": operator.ior,
    "&=": operator.iand,
    "^=": operator.ixor,
}


def _inplacevar(op: str, x: Any, y: Any) -> Any:
    """Guard for augmented assignment (x += y)."""
    fn = _INPLACE_OPS.get(op)
    if fn is None:
        raise SyntaxError(f"Augmented assignment {op!r} is not allowed")
    return fn(x, y)


def _apply(f: Any, *args: Any, **kwargs: Any) -> Any:
    """Guard for calls using *args / **kwargs."""
    return f(*args, **kwargs)


def _make_safe_builtins() -> dict[str, Any]:
    """
    Builtins. safe_builtins already has dict, list, range, Exception, etc.

    Exception classes outside the Exception hierarchy (SystemExit,
    KeyboardInterrupt, GeneratorExit, BaseException) are left out.
    """
    return {
        name: obj
        for name, obj in safe_builtins.items()
        if not (isinstance(obj, type) and issubclass(obj, BaseException) and not issubclass(obj, Exception))
    }


def _make_guard_globals() -> dict[str, Any]:
    """Guards required by RestrictedPython's rewritten bytecode."""
    return {
        "_getattr_": safer_getattr,
        "_getiter_": default_guarded_getiter,
        "_getitem_": default_guarded_getitem,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
        "_inplacevar_": _inplacevar,
        "_apply_": _apply,
    }


def _make_extra_globals() -> dict[str, Any]:
    """Extra safe symbols: json, math, datetime, date, time, timedelta."""
    return {
        "json": json,
        "math": math,
        "datetime": datetime,
        "date": date,
        "time": time,
        "timedelta": timedelta,
    }


def _inject_extra_modules(g: dict[str, Any]) -> None:
    """Expose whitelisted modules from SCRIPT_EXTRA_MODULES. User code cannot import."""
    for name in settings.script_extra_modules:
        if not _SAFE_MODULE_NAME_RE.match(name):
            _log.warning("Ignoring invalid SCRIPT_EXTRA_MODULES entry %r", name)
            continue
        try:
            g[name] = importlib.import_module(name)
        except ImportError as e:
            _log.warning("SCRIPT_EXTRA_MODULES: cannot import %r: %s", name, e)


def compile_script(script: str, filename: str = "<script>") -> Any:
    """
    Compile script with RestrictedPython. Raises SyntaxError on failure.

    Returns a code object suitable for exec(bytecode, globals).
    """
    code = compile_restricted(script, filename, "exec")
    if code is None:
        raise SyntaxError("RestrictedPython: compile failed")
    return code


def build_restricted_globals(context_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Build the globals dict for exec(compiled, globals): safe builtins, guards,
    extra (json, math, datetime), whitelisted modules, and context_dict.
    """
    safe = _make_safe_builtins()
    g: dict[str, Any] = {
        "__builtins__": safe,
        "__name__": "script",
    }
    g.update(_make_guard_globals())
    g.update(_make_extra_globals())
    for name in _GLOBAL_BUILTINS:
        obj = safe.get(name, getattr(builtins, name, None))
        if obj is not None:
            g[name] = obj
    _inject_extra_modules(g)
    g.update(context_dict)
    return g
