"""
Function compiler: user FunctionDefinition (name, params, body) -> callable.

The body is the Python source of a function body (not a full ``def``); it is
wrapped as::

    def name(p1, p2):
        <body>

and compiled with RestrictedPython. Compile and invocation failures propagate
to the caller (helper registry, script sandbox), which owns containment.
"""

import json
import keyword
import logging
import textwrap
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from preview_engine.core.budget import execution_budget
from preview_engine.core.coerce import coerce_test_argument
from preview_engine.core.config import settings
from preview_engine.engines.sandbox import (
    build_restricted_globals,
    compile_script,
)
from preview_engine.models import FunctionDefinition, FunctionTestResult

_log = logging.getLogger(__name__)


class FunctionCompileError(ValueError):
    """Raised when a function definition is invalid or does not compile."""

    pass


class CompiledFunction:
    """
    Invocable unit built from a FunctionDefinition.

    ``invoke(args)`` binds args to params in order: missing trailing args are
    None, extras are dropped. ``fn(*args)`` does the same.
    """

    def __init__(self, name: str, params: Sequence[str], fn: Any) -> None:
        self.name = name
        self.params = tuple(params)
        self._fn = fn

    def invoke(self, args: Sequence[Any]) -> Any:
        n = len(self.params)
        bound = list(args[:n])
        bound.extend([None] * (n - len(bound)))
        return self._fn(*bound)

    def __call__(self, *args: Any) -> Any:
        return self.invoke(args)

    def __repr__(self) -> str:
        return f"<CompiledFunction {self.name}({', '.join(self.params)})>"


def _valid_identifier(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name) and not name.startswith("_")


def build_function_source(name: str, params: Sequence[str], body: str) -> str:
    """Wrap *body* into a ``def`` statement. Blank bodies become ``pass``."""
    if not _valid_identifier(name):
        raise FunctionCompileError(f"Invalid function name: {name!r}")
    for p in params:
        if not _valid_identifier(p):
            raise FunctionCompileError(f"Invalid parameter name {p!r} in {name!r}")
    if len(set(params)) != len(params):
        raise FunctionCompileError(f"Duplicate parameter names in {name!r}")

    text = textwrap.dedent((body or "").replace("\r\n", "\n")).strip("\n")
    if not text.strip():
        text = "pass"
    return f"def {name}({', '.join(params)}):\n" + textwrap.indent(text, "    ")


def compile_function(
    params: Sequence[str],
    body: str,
    *,
    name: str = "fn",
    namespace: dict[str, Any] | None = None,
) -> CompiledFunction:
    """
    Compile *body* with *params* into a CompiledFunction.

    When *namespace* is given, the definition is executed there (the script
    sandbox shares one namespace so functions see each other, ``ctx`` and
    ``log``) and the name is rebound to the CompiledFunction wrapper.
    Otherwise a fresh restricted globals dict is used.
    """
    source = build_function_source(name, list(params), body)
    try:
        code = compile_script(source, filename=f"<function:{name}>")
    except SyntaxError as e:
        raise FunctionCompileError(f"Syntax error in '{name}': {e}") from e

    g = namespace if namespace is not None else build_restricted_globals({})
    exec(code, g)  # noqa: S102 - RestrictedPython compiled code
    compiled = CompiledFunction(name, params, g[name])
    g[name] = compiled
    return compiled


def normalize_functions(
    functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None,
) -> list[FunctionDefinition]:
    """Accept FunctionDefinition models or plain dicts ({name, params, body})."""
    out: list[FunctionDefinition] = []
    for f in functions or ():
        if isinstance(f, FunctionDefinition):
            out.append(f)
            continue
        try:
            out.append(FunctionDefinition.model_validate(f))
        except ValidationError as e:
            raise FunctionCompileError(f"Invalid function definition: {e}") from e
    return out


def index_functions(functions: Iterable[FunctionDefinition]) -> dict[str, FunctionDefinition]:
    """Name -> definition; on duplicate names the last one wins."""
    by_name: dict[str, FunctionDefinition] = {}
    for f in functions:
        if f.name in by_name:
            _log.debug("Duplicate function name %r: last definition wins", f.name)
        by_name[f.name] = f
    return by_name


def format_value(value: Any) -> str:
    """Text form of a value for logs and test output: JSON for containers."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, indent=2, default=str, ensure_ascii=False)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def run_function_test(
    definition: FunctionDefinition | Mapping[str, Any],
    raw_args: Mapping[str, str] | None = None,
) -> FunctionTestResult:
    """
    "Test this function": coerce text args per param, invoke, report output or error.

    Never raises for user errors; the result carries either output or error.
    """
    raw_args = raw_args or {}
    try:
        (fdef,) = normalize_functions([definition])
        compiled = compile_function(fdef.params, fdef.body, name=fdef.name)
        args = [coerce_test_argument(raw_args[p]) if p in raw_args else None for p in fdef.params]
        with execution_budget(settings.SCRIPT_EXEC_TIMEOUT, what="Function test"):
            value = compiled.invoke(args)
    except KeyboardInterrupt:
        raise
    except BaseException as e:
        _log.debug("Function test failed: %s", e)
        return FunctionTestResult(error=str(e) or type(e).__name__)
    return FunctionTestResult(output=format_value(value))
