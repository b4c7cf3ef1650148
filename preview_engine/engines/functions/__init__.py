"""
User functions: argument splitting and compilation (RestrictedPython).

Exports: split_arguments, compile_function, CompiledFunction,
FunctionCompileError, run_function_test.
"""

from .arguments import split_arguments
from .compiler import (
    CompiledFunction,
    FunctionCompileError,
    compile_function,
    run_function_test,
)

__all__ = [
    "split_arguments",
    "compile_function",
    "CompiledFunction",
    "FunctionCompileError",
    "run_function_test",
]
