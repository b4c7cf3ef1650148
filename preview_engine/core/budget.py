"""
Execution budget for user code (scripts, function tests, template renders).

On the main thread of a Unix process the budget uses signal.SIGALRM. Anywhere
else (FastAPI's worker threads, Windows) it falls back to a per-thread
sys.settrace deadline check, which is slower but needs no signal.
"""

import logging
import signal
import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

_log = logging.getLogger(__name__)

_trace_state = threading.local()


class ExecutionBudgetExceeded(TimeoutError):
    """Raised when user code runs longer than its configured budget."""

    pass


def budget_supported() -> bool:
    """True when SIGALRM is available and we are on the main thread."""
    return (
        hasattr(signal, "SIGALRM")
        and threading.current_thread() is threading.main_thread()
    )


@contextmanager
def _alarm_budget(seconds: int, what: str) -> Iterator[None]:
    if signal.getitimer(signal.ITIMER_REAL)[0] > 0:
        yield
        return

    def _handler(signum: int, frame: Any) -> None:
        raise ExecutionBudgetExceeded(f"{what} timed out after {seconds}s")

    old = signal.signal(signal.SIGALRM, _handler)
    try:
        signal.alarm(seconds)
        try:
            yield
        finally:
            signal.alarm(0)
    finally:
        signal.signal(signal.SIGALRM, old)


@contextmanager
def _trace_budget(seconds: int, what: str) -> Iterator[None]:
    if getattr(_trace_state, "active", False):
        yield
        return
    deadline = time.monotonic() + seconds

    def _check(frame: Any, event: str, arg: Any) -> Any:
        if time.monotonic() > deadline:
            # Raising from a trace function also uninstalls it
            raise ExecutionBudgetExceeded(f"{what} timed out after {seconds}s")
        return _check

    previous = sys.gettrace()
    _trace_state.active = True
    sys.settrace(_check)
    try:
        yield
    finally:
        sys.settrace(previous)
        _trace_state.active = False


@contextmanager
def execution_budget(
    seconds: int | None, *, what: str = "Script execution"
) -> Iterator[None]:
    """
    Abort the enclosed block with ExecutionBudgetExceeded after *seconds*.

    No-op when seconds is falsy or a budget is already running on this
    thread (budgets do not nest; the outer one wins).
    """
    if not seconds or seconds <= 0:
        yield
        return
    if budget_supported():
        with _alarm_budget(seconds, what):
            yield
        return
    _log.debug("%s budget enforced by tracing (no SIGALRM here)", what)
    with _trace_budget(seconds, what):
        yield
