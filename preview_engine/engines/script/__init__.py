"""
Script engine (Python, RestrictedPython).

Exports: ScriptExecutor, ScriptContext, execute_script.
"""

from .context import ScriptContext
from .executor import ScriptExecutor, execute_script

__all__ = [
    "ScriptContext",
    "ScriptExecutor",
    "execute_script",
]
