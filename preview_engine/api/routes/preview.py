"""
Preview routes: render templates, run scripts, scan for missing functions,
test a single function, parse context JSON.

TemplateError (422) and ExecutionBudgetExceeded (408) are turned into
responses by the app-level handlers in ``preview_engine.main``. Script faults
are never HTTP errors; they come back inside the ExecutionResult.
"""

import logging
from typing import Any

from fastapi import APIRouter

from preview_engine.core.coerce import build_variable_tree, parse_context
from preview_engine.engines import PreviewExecutor
from preview_engine.engines.functions import run_function_test
from preview_engine.engines.script import ScriptExecutor
from preview_engine.engines.template import TemplateRenderer, scan_missing_functions
from preview_engine.models import (
    ContextParseIn,
    ContextParseOut,
    ExecuteIn,
    ExecutionResult,
    FunctionTestIn,
    FunctionTestResult,
    PreviewIn,
    RenderIn,
    RenderOut,
    ScanIn,
    ScanOut,
)

_log = logging.getLogger(__name__)

router = APIRouter(tags=["preview"])


@router.post("/preview/render", response_model=RenderOut)
def render_preview(body: RenderIn) -> RenderOut:
    """Render a template with context and user functions."""
    output = TemplateRenderer().render(
        body.template, body.context, body.functions, autoescape=body.autoescape
    )
    missing = sorted(scan_missing_functions(body.template, body.functions))
    return RenderOut(output=output, missing_functions=missing)


@router.post("/preview/execute", response_model=ExecutionResult)
def execute_preview(body: ExecuteIn) -> ExecutionResult:
    """Run a script in the sandbox. Always 200; faults are in ``error``."""
    return ScriptExecutor().execute(body.code, body.context, body.functions)


@router.post("/preview/scan", response_model=ScanOut)
def scan_preview(body: ScanIn) -> ScanOut:
    return ScanOut(missing_functions=sorted(scan_missing_functions(body.template, body.functions)))


@router.post("/preview/run")
def run_preview(body: PreviewIn) -> dict[str, Any]:
    """Dispatch by editor type (template render or script run)."""
    out = PreviewExecutor().execute(body.editor_type, body.content, body.context, body.functions)
    result = out.get("result")
    if isinstance(result, ExecutionResult):
        out["result"] = result.model_dump(by_alias=True)
    return out


@router.post("/functions/test", response_model=FunctionTestResult)
def function_test(body: FunctionTestIn) -> FunctionTestResult:
    """Invoke one function with text arguments (coerced like the editor does)."""
    return run_function_test(body.function, body.args)


@router.post("/context/parse", response_model=ContextParseOut)
def parse_context_text(body: ContextParseIn) -> ContextParseOut:
    """Parse context JSON; on error return {} plus the parse message."""
    context, error = parse_context(body.text)
    if error:
        _log.debug("Context parse failed: %s", error)
    return ContextParseOut(context=context, error=error, tree=build_variable_tree(context))
