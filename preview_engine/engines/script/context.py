"""
ScriptContext: ctx, log, print and user functions for one script run.
"""

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from preview_engine.engines.functions.compiler import (
    compile_function,
    index_functions,
    normalize_functions,
)
from preview_engine.engines.sandbox import build_restricted_globals
from preview_engine.models import FunctionDefinition

from .modules import make_log_module

_log = logging.getLogger(__name__)


class ScriptContext:
    """
    Working state of one script run.

    ``ctx`` is a deep copy of the caller's context: the script may mutate it
    freely and the caller's object is never touched. ``logs`` collects every
    ``log(...)`` / ``print(...)`` line in call order.
    """

    def __init__(
        self,
        *,
        context: Mapping[str, Any] | None,
        functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.ctx: dict[str, Any] = copy.deepcopy(dict(context or {}))
        self.logs: list[str] = []
        self.log, self._print_factory = make_log_module(self.logs, logger_instance=logger)
        self._functions = functions

    def build_globals(self) -> dict[str, Any]:
        """
        Restricted globals with ctx, log, print and every user function bound
        by name. Functions share this namespace, so they can call each other
        and see ctx/log. Raises if a function does not compile.
        """
        g = build_restricted_globals(self.to_dict())
        for name, fdef in index_functions(normalize_functions(self._functions)).items():
            compile_function(fdef.params, fdef.body, name=name, namespace=g)
        return g

    def to_dict(self) -> dict[str, Any]:
        """Namespace entries injected into the script: ctx, log, _print_."""
        return {
            "ctx": self.ctx,
            "log": self.log,
            "_print_": self._print_factory,
        }
