"""
Rewrite the {{#func:name(args)}} shorthand into a native helper call.

    {{#func:calcTax(order.total, "a,b")}}  ->  {{ func 'calcTax' order.total "a,b" }}

Single regex pass over the whole template; block structure is not parsed, so
a shorthand inside a quoted literal elsewhere is rewritten too.
"""

import re

from preview_engine.engines.functions.arguments import split_arguments

# Tolerant of whitespace/newlines that editors may introduce
SHORTHAND_CALL_RE = re.compile(
    r"\{\{\s*#func:([a-zA-Z0-9_]+)\s*\(([\s\S]*?)\)\s*\}\}"
)
_NEWLINES_RE = re.compile(r"[\r\n]+")


def _rewrite(match: re.Match[str]) -> str:
    name, raw_args = match.group(1), match.group(2)
    args = split_arguments(_NEWLINES_RE.sub(" ", raw_args))
    if not args:
        return f"{{{{ func '{name}' }}}}"
    return f"{{{{ func '{name}' {' '.join(args)} }}}}"


def preprocess_template(template: str) -> str:
    """Return *template* with every shorthand call rewritten; nothing else changes."""
    return SHORTHAND_CALL_RE.sub(_rewrite, template)
