"""
Script engine modules: log (and print routed to the log).
"""

from .log import ScriptLog, make_log_module

__all__ = [
    "ScriptLog",
    "make_log_module",
]
