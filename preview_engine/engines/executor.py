"""
Unified preview executor.

Dispatches by editor type: JSON/XML/HTML/SQL content to the template
renderer, SCRIPT content to the script sandbox. Missing function references
are reported alongside either result.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from preview_engine.engines.script import ScriptExecutor
from preview_engine.engines.template import TemplateRenderer, scan_missing_functions
from preview_engine.models import EditorTypeEnum, FunctionDefinition

_log = logging.getLogger(__name__)

# HTML-escape {{ }} output for markup previews; JSON and SQL stay verbatim
_AUTOESCAPE: dict[EditorTypeEnum, bool] = {
    EditorTypeEnum.EMAIL_HTML: True,
    EditorTypeEnum.XML_TEMPLATE: True,
    EditorTypeEnum.JSON_REST: False,
    EditorTypeEnum.DB_QUERY: False,
}


class PreviewExecutor:
    """
    execute(editor_type, content, context, functions)
    -> {"output": str, "missing_functions": [...]} for templates
    -> {"result": ExecutionResult, "missing_functions": []} for scripts
    """

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        script_executor: ScriptExecutor | None = None,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.script_executor = script_executor or ScriptExecutor()

    def execute(
        self,
        editor_type: EditorTypeEnum,
        content: str,
        context: Mapping[str, Any] | None = None,
        functions: Iterable[FunctionDefinition | Mapping[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """
        Run a preview. Template errors raise TemplateError (fatal for the
        preview); script faults never raise and are reported in the result.
        """
        _functions = list(functions or [])
        _context = context or {}

        if editor_type == EditorTypeEnum.SCRIPT:
            result = self.script_executor.execute(content, _context, _functions)
            if result.error:
                _log.info("Script preview failed: %s", result.error)
            return {"result": result, "missing_functions": []}

        if editor_type in _AUTOESCAPE:
            missing = sorted(scan_missing_functions(content, _functions))
            if missing:
                _log.debug("Template references undefined functions: %s", missing)
            output = self.renderer.render(
                content, _context, _functions, autoescape=_AUTOESCAPE[editor_type]
            )
            return {"output": output, "missing_functions": missing}

        raise ValueError(f"Unsupported editor type: {editor_type}")
