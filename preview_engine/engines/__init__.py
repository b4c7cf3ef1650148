"""
Engines: Template (Handlebars-style dialect on Jinja2), Script (Python,
RestrictedPython), user functions, and the PreviewExecutor dispatching
between them.
"""

from preview_engine.engines.executor import PreviewExecutor
from preview_engine.engines.functions import compile_function, split_arguments
from preview_engine.engines.script import ScriptContext, ScriptExecutor, execute_script
from preview_engine.engines.template import (
    TemplateError,
    TemplateRenderer,
    render_template,
    scan_missing_functions,
)

__all__ = [
    "PreviewExecutor",
    "TemplateRenderer",
    "TemplateError",
    "render_template",
    "scan_missing_functions",
    "ScriptExecutor",
    "ScriptContext",
    "execute_script",
    "compile_function",
    "split_arguments",
]
