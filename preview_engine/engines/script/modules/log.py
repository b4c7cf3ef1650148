"""
Log module for the script engine: ``log(x)`` plus info, warn, error, debug.

Every call appends one formatted line to the run's log list (returned to the
console view) and is mirrored to the Python logger at DEBUG.
"""

import logging
from collections.abc import Callable
from typing import Any

from preview_engine.engines.functions.compiler import format_value

logger = logging.getLogger(__name__)


class ScriptLog:
    """Callable ``log`` object injected into scripts."""

    def __init__(self, sink: list[str], logger_instance: logging.Logger | None = None) -> None:
        self._sink = sink
        self._logger = logger_instance or logger

    def _emit(self, prefix: str, args: tuple[Any, ...]) -> None:
        line = " ".join(format_value(a) for a in args)
        if prefix:
            line = f"[{prefix}] {line}"
        self._sink.append(line)
        self._logger.debug("script log: %s", line)

    def __call__(self, *args: Any) -> None:
        self._emit("", args)

    def info(self, *args: Any) -> None:
        self._emit("info", args)

    def warn(self, *args: Any) -> None:
        self._emit("warn", args)

    def error(self, *args: Any) -> None:
        self._emit("error", args)

    def debug(self, *args: Any) -> None:
        self._emit("debug", args)


class _PrintCollector:
    """RestrictedPython ``_print_`` target: each print() becomes one log line."""

    def __init__(self, log: ScriptLog) -> None:
        self._log = log
        self._printed: list[str] = []

    def _call_print(self, *objects: Any, **kwargs: Any) -> None:
        sep = kwargs.get("sep", " ")
        sep = " " if sep is None else str(sep)
        line = sep.join(o if isinstance(o, str) else format_value(o) for o in objects)
        self._printed.append(line)
        self._log(line)

    def __call__(self) -> str:
        # Value of the ``printed`` name inside scripts
        return "\n".join(self._printed)


def make_log_module(
    sink: list[str],
    *,
    logger_instance: logging.Logger | None = None,
) -> tuple[ScriptLog, Callable[..., _PrintCollector]]:
    """Build the ``log`` object and the ``_print_`` factory writing to *sink*."""
    log = ScriptLog(sink, logger_instance)

    def print_factory(_getattr_: Any = None) -> _PrintCollector:
        return _PrintCollector(log)

    return log, print_factory
