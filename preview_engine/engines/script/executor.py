"""
ScriptExecutor: execute(code, context, functions) -> ExecutionResult.

Compiles with RestrictedPython and runs in the sandbox against a deep copy of
the context. Never raises to the caller: compile errors, runtime faults and
an exceeded SCRIPT_EXEC_TIMEOUT are all captured in ``result.error`` with the
logs and context mutations made up to the fault.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from preview_engine.core.budget import execution_budget
from preview_engine.core.config import settings
from preview_engine.engines.sandbox import compile_script
from preview_engine.models import ExecutionResult, FunctionDefinition

from .context import ScriptContext

_log = logging.getLogger(__name__)


def _error_message(e: BaseException) -> str:
    return str(e) or type(e).__name__


class ScriptExecutor:
    """
    Run a Python script in a RestrictedPython sandbox with ``ctx`` (working
    copy of the context), ``log`` and the user functions as free names.
    """

    def __init__(self, timeout: int | None = None) -> None:
        self._timeout = timeout

    def execute(
        self,
        code: str,
        context: Mapping[str, Any] | None,
        functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
    ) -> ExecutionResult:
        """
        Execute *code*. On success returns logs and the mutated working copy;
        on a fault also sets ``error`` (message) and ``error_type`` (class).
        """
        script_ctx = ScriptContext(context=context, functions=functions, logger=_log)
        timeout = self._timeout if self._timeout is not None else settings.SCRIPT_EXEC_TIMEOUT
        try:
            g = script_ctx.build_globals()
            compiled = compile_script(code or "", filename="<script>")
            with execution_budget(timeout, what="Script execution"):
                exec(compiled, g)  # noqa: S102 - RestrictedPython compiled code
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            # User code can still reach BaseException through ValueError.mro()
            _log.debug("Script failed: %s: %s", type(e).__name__, e)
            return ExecutionResult(
                logs=script_ctx.logs,
                final_context=script_ctx.ctx,
                error=_error_message(e),
                error_type=type(e).__name__,
            )
        return ExecutionResult(logs=script_ctx.logs, final_context=script_ctx.ctx)


def execute_script(
    code: str,
    context: Mapping[str, Any] | None,
    functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
) -> ExecutionResult:
    """Shortcut for ``ScriptExecutor().execute(...)``."""
    return ScriptExecutor().execute(code, context, functions)
