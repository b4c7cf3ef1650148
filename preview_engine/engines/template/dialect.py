"""
Handlebars-style template dialect, translated to Jinja2 source.

Editors write templates the Handlebars way::

    Hi {{ user.name }}!
    {{#each order.items}}{{ @key }}={{ uppercase this.sku }}{{#unless @last}},{{/unless}}{{/each}}
    {{#if (gt order.total 100)}}big{{else}}small{{/if}}

``translate`` tokenizes the template once and emits equivalent Jinja2 source
in which every value access goes through explicit scope variables
(``_s0`` is the root context, ``_s1``... are pushed by ``each``/``with``)
and every helper call goes through the per-render registry ``_h``. Context
keys therefore never collide with Jinja2 names (``loop``, ``range``...).

Supported: ``{{ path }}``, ``{{{ raw }}}``, ``{{& raw }}``, ``{{ helper a b }}``,
subexpressions ``(helper a b)``, ``#if``/``#unless``/``#each``/``#with``,
``{{else}}``/``{{^}}``, ``{{else if x}}`` chains, inverse sections
``{{^name}}``, block helpers ``{{#helper a}}...{{/helper}}`` (truthiness of
the result), block params ``{{#each xs as |x i|}}``, ``this``, ``.``,
``../``, ``@root``, ``@key``, ``@index``, ``@first``, ``@last``, bracket
segments ``[first name]``, ``~`` whitespace control, comments and
``\\{{`` escapes.

Not supported (TemplateError): partials, hash arguments, decorators.
"""

import json
import re
from collections.abc import Collection
from dataclasses import dataclass, field
from typing import Any

from preview_engine.engines.template.errors import MissingHelperError, TemplateError

_TAG_RE = re.compile(
    r"(?P<escape>\\)?"
    r"(?:"
    r"\{\{(?P<long_comment>~?!--[\s\S]*?--~?)\}\}"
    r"|\{\{\{(?P<raw>[\s\S]*?)\}\}\}"
    r"|\{\{(?P<body>[\s\S]*?)\}\}"
    r")"
)

# Characters that may not appear in an unbracketed path segment
_SEGMENT = r"(?:\[[^\]]*\]|[^\s!\"#%&'()*+,./;<=>@\[\\\]^`{|}~]+)"

_EXPR_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<lparen>\()"
    r"|(?P<rparen>\))"
    r"|(?P<string>\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*')"
    r"|(?P<number>-?\d+(?:\.\d+)?)(?=[\s()]|$)"
    r"|(?P<hash>" + _SEGMENT + r"=)"
    r"|(?P<path>(?:\.\./)*(?:@?" + _SEGMENT + r"|\.)(?:[./]" + _SEGMENT + r")*)"
    r")"
)

_PATH_PART_RE = re.compile(r"\[([^\]]*)\]|([^./\[\]]+)")
_BLOCK_PARAMS_RE = re.compile(r"\s+as\s+\|([^|]*)\|\s*$")
_STRING_ESCAPE_RE = re.compile(r"\\(.)")
_JINJA_OPENER_RE = re.compile(r"\{(?=[{%#]|\Z)")
# Tags that vanish together with their line when nothing else is on it
_STANDALONE_PREFIXES = ("#", "^", "/", "!")

_LITERAL_WORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}
_LOOP_DATA = {"index": "loop.index0", "first": "loop.first", "last": "loop.last"}


# ---------------------------------------------------------------------------
# Expression AST
# ---------------------------------------------------------------------------


@dataclass
class Literal:
    value: Any


@dataclass
class PathExpr:
    text: str
    parts: list[str]
    ups: int = 0
    data: bool = False
    this: bool = False

    @property
    def simple_name(self) -> str | None:
        """Bare single-segment name (a helper candidate in head position)."""
        if self.ups or self.data or self.this or len(self.parts) != 1:
            return None
        return self.parts[0]


@dataclass
class SubExpr:
    name: str
    params: list[Any] = field(default_factory=list)


@dataclass
class _Block:
    kind: str  # "if" | "each" | "with"
    name: str
    line: int
    pushed: bool = False
    in_else: bool = False
    locals_pushed: bool = False


# ---------------------------------------------------------------------------
# Expression parsing
# ---------------------------------------------------------------------------


def _tokenize_expr(body: str, line: int) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(body):
        m = _EXPR_TOKEN_RE.match(body, pos)
        if m is None or m.end() == pos:
            if not body[pos:].strip():
                break
            raise TemplateError(
                f"Parse error on line {line}: unexpected {body[pos:].strip()!r} in {{{{{body}}}}}"
            )
        kind = m.lastgroup or ""
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


def _parse_path(text: str) -> PathExpr:
    rest = text
    ups = 0
    while rest.startswith("../"):
        ups += 1
        rest = rest[3:]
    data = rest.startswith("@")
    if data:
        rest = rest[1:]
    if rest == ".":
        return PathExpr(text=text, parts=[], ups=ups, this=True)
    parts: list[str] = []
    bracketed_first = rest.startswith("[")
    explicit_this = rest.startswith("./")
    for bracketed, plain in _PATH_PART_RE.findall(rest):
        parts.append(bracketed if bracketed or not plain else plain)
    this = explicit_this
    if parts and parts[0] == "this" and not bracketed_first and not data:
        this = True
        parts = parts[1:]
    return PathExpr(text=text, parts=parts, ups=ups, data=data, this=this)


def _parse_params(tokens: list[tuple[str, str]], pos: int, line: int, nested: bool) -> tuple[list[Any], int]:
    params: list[Any] = []
    while pos < len(tokens):
        kind, text = tokens[pos]
        if kind == "rparen":
            if not nested:
                raise TemplateError(f"Parse error on line {line}: unexpected ')'")
            return params, pos + 1
        if kind == "lparen":
            inner, pos = _parse_params(tokens, pos + 1, line, nested=True)
            if not inner or not isinstance(inner[0], PathExpr) or inner[0].simple_name is None:
                raise TemplateError(f"Parse error on line {line}: subexpression must start with a helper name")
            params.append(SubExpr(inner[0].simple_name, inner[1:]))
            continue
        if kind == "string":
            params.append(Literal(_STRING_ESCAPE_RE.sub(r"\1", text[1:-1])))
        elif kind == "number":
            params.append(Literal(float(text) if "." in text else int(text)))
        elif kind == "hash":
            raise TemplateError(
                f"Parse error on line {line}: hash arguments ({text}...) are not supported"
            )
        elif text in _LITERAL_WORDS:
            params.append(Literal(_LITERAL_WORDS[text]))
        else:
            params.append(_parse_path(text))
        pos += 1
    if nested:
        raise TemplateError(f"Parse error on line {line}: unclosed '('")
    return params, pos


def parse_expression(body: str, line: int = 1) -> list[Any]:
    """Parse a tag body into its top-level params (head included)."""
    params, _ = _parse_params(_tokenize_expr(body, line), 0, line, nested=False)
    return params


# ---------------------------------------------------------------------------
# Translator
# ---------------------------------------------------------------------------


def _literal(value: Any) -> str:
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    return json.dumps(str(value))


def _tag(inner: str, lstrip: bool, rstrip: bool) -> str:
    return "{%" + ("-" if lstrip else "") + " " + inner + " " + ("-" if rstrip else "") + "%}"


def _var(inner: str, lstrip: bool, rstrip: bool) -> str:
    return "{{" + ("-" if lstrip else "") + " " + inner + " " + ("-" if rstrip else "") + "}}"


def _strip_flags(body: str) -> tuple[str, bool, bool]:
    lstrip = body.startswith("~")
    if lstrip:
        body = body[1:]
    rstrip = body.endswith("~")
    if rstrip:
        body = body[:-1]
    return body.strip(), lstrip, rstrip


class _Translator:
    def __init__(self, source: str, helpers: Collection[str]) -> None:
        self.source = source
        self.helpers = helpers
        self.out: list[str] = []
        self.blocks: list[_Block] = []
        self.scopes: list[int] = [0]
        self.each_stack: list[int] = []
        self.locals: list[dict[str, str]] = []

    # -- scope ----------------------------------------------------------

    def _push_scope(self) -> int:
        depth = len(self.scopes)
        self.scopes.append(depth)
        return depth

    def _line(self, pos: int) -> int:
        return self.source.count("\n", 0, pos) + 1

    # -- expressions ----------------------------------------------------

    def _emit_path(self, p: PathExpr) -> str:
        if p.data:
            if not p.parts:
                return "none"
            head, rest = p.parts[0], p.parts[1:]
            if head == "root":
                base = "_s0"
            elif not self.each_stack:
                return "none"
            elif head == "key":
                base = f"_k{self.each_stack[-1]}"
            elif head in _LOOP_DATA:
                base = _LOOP_DATA[head]
            else:
                return "none"
        else:
            base = ""
            rest = p.parts
            if not p.ups and not p.this and p.parts:
                for frame in reversed(self.locals):
                    if p.parts[0] in frame:
                        base, rest = frame[p.parts[0]], p.parts[1:]
                        break
            if not base:
                idx = max(len(self.scopes) - 1 - p.ups, 0)
                base = f"_s{self.scopes[idx]}"
        if not rest:
            return base
        return f"_lookup({base}, {', '.join(json.dumps(s) for s in rest)})"

    def _emit_param(self, p: Any) -> str:
        if isinstance(p, Literal):
            return _literal(p.value)
        if isinstance(p, SubExpr):
            return self._emit_call(p.name, p.params)
        return self._emit_path(p)

    def _emit_call(self, name: str, params: list[Any]) -> str:
        if name not in self.helpers:
            raise MissingHelperError(name)
        args = "".join(", " + self._emit_param(p) for p in params)
        return f"_h.call({json.dumps(name)}{args})"

    def _emit_statement(self, body: str, line: int) -> str:
        """A mustache body: helper call (head is a helper) or a single value."""
        params = parse_expression(body, line)
        if not params:
            raise TemplateError(f"Parse error on line {line}: empty expression")
        head = params[0]
        name = head.simple_name if isinstance(head, PathExpr) else None
        if len(params) == 1:
            if name is not None and name in self.helpers and not self._is_local(name):
                return self._emit_call(name, [])
            return self._emit_param(head)
        if name is None:
            raise TemplateError(f"Parse error on line {line}: {{{{{body}}}}} is not a helper call")
        return self._emit_call(name, params[1:])

    def _is_local(self, name: str) -> bool:
        return any(name in frame for frame in self.locals)

    def _single_param(self, name: str, rest: str, line: int) -> str:
        params = parse_expression(rest, line)
        if len(params) != 1:
            raise TemplateError(f"#{name} requires exactly one argument (line {line})")
        return self._emit_param(params[0])

    # -- text -----------------------------------------------------------

    def _emit_text(self, text: str) -> None:
        if text:
            self.out.append(_JINJA_OPENER_RE.sub("{{ '{' }}", text))

    # -- blocks ---------------------------------------------------------

    def _open_block(self, body: str, lstrip: bool, rstrip: bool, line: int) -> None:
        block_params: list[str] = []
        m = _BLOCK_PARAMS_RE.search(body)
        if m:
            block_params = m.group(1).split()
            body = body[: m.start()]
        name, _, rest = body.partition(" ")
        name = name.strip()
        rest = rest.strip()
        if not name or name.startswith((">", "*")):
            raise TemplateError(f"Unsupported block {{{{#{body}}}}} on line {line}")

        if name in ("if", "unless"):
            expr = self._single_param(name, rest, line)
            test = f"_truthy({expr})" if name == "if" else f"not _truthy({expr})"
            self.out.append(_tag(f"if {test}", lstrip, rstrip))
            self.blocks.append(_Block("if", name, line))
        elif name == "each":
            expr = self._single_param(name, rest, line)
            depth = self._push_scope()
            self.each_stack.append(depth)
            self.out.append(_tag(f"for _k{depth}, _s{depth} in _pairs({expr})", lstrip, rstrip))
            block = _Block("each", name, line, pushed=True)
            if block_params:
                frame = {block_params[0]: f"_s{depth}"}
                if len(block_params) > 1:
                    frame[block_params[1]] = f"_k{depth}"
                self.locals.append(frame)
                block.locals_pushed = True
            self.blocks.append(block)
        elif name == "with":
            expr = self._single_param(name, rest, line)
            depth = self._push_scope()
            self.out.append(_tag(f"with _s{depth} = {expr}", lstrip, False))
            self.out.append(_tag(f"if _truthy(_s{depth})", False, rstrip))
            block = _Block("with", name, line, pushed=True)
            if block_params:
                self.locals.append({block_params[0]: f"_s{depth}"})
                block.locals_pushed = True
            self.blocks.append(block)
        else:
            if name not in self.helpers:
                raise MissingHelperError(name)
            expr = self._emit_statement(body, line)
            self.out.append(_tag(f"if _truthy({expr})", lstrip, rstrip))
            self.blocks.append(_Block("if", name, line))

    def _open_inverse(self, body: str, lstrip: bool, rstrip: bool, line: int) -> None:
        params = parse_expression(body, line)
        if len(params) != 1:
            raise TemplateError(f"Inverse section {{{{^{body}}}}} takes one value (line {line})")
        expr = self._emit_param(params[0])
        self.out.append(_tag(f"if not _truthy({expr})", lstrip, rstrip))
        self.blocks.append(_Block("if", body.strip(), line))

    def _leave_scope(self, block: _Block) -> None:
        if block.pushed:
            self.scopes.pop()
            if block.kind == "each":
                self.each_stack.pop()
            block.pushed = False
        if block.locals_pushed:
            self.locals.pop()
            block.locals_pushed = False

    def _else(self, rest: str, lstrip: bool, rstrip: bool, line: int) -> None:
        if not self.blocks:
            raise TemplateError(f"{{{{else}}}} outside of a block on line {line}")
        block = self.blocks[-1]
        if block.in_else:
            raise TemplateError(f"Duplicate {{{{else}}}} in #{block.name} on line {line}")
        if not rest:
            self._leave_scope(block)
            block.in_else = True
            self.out.append(_tag("else", lstrip, rstrip))
            return
        if block.kind != "if":
            raise TemplateError(f"{{{{else {rest}}}}} is not supported inside #{block.name} (line {line})")
        name, _, args = rest.partition(" ")
        if name in ("if", "unless"):
            expr = self._single_param(name, args.strip(), line)
            test = f"_truthy({expr})" if name == "if" else f"not _truthy({expr})"
        else:
            if name not in self.helpers:
                raise MissingHelperError(name)
            test = f"_truthy({self._emit_statement(rest, line)})"
        self.out.append(_tag(f"elif {test}", lstrip, rstrip))

    def _close_block(self, name: str, lstrip: bool, rstrip: bool, line: int) -> None:
        if not self.blocks:
            raise TemplateError(f"Unexpected closing tag {{{{/{name}}}}} on line {line}")
        block = self.blocks.pop()
        if block.name != name:
            raise TemplateError(f"{block.name} doesn't match {name} (line {line})")
        self._leave_scope(block)
        if block.kind == "each":
            self.out.append(_tag("endfor", lstrip, rstrip))
        elif block.kind == "with":
            self.out.append(_tag("endif", lstrip, False))
            self.out.append(_tag("endwith", False, rstrip))
        else:
            self.out.append(_tag("endif", lstrip, rstrip))

    # -- driver ---------------------------------------------------------

    def _handle_tag(self, m: re.Match[str]) -> None:
        line = self._line(m.start())
        if m.group("long_comment") is not None:
            _, lstrip, rstrip = _strip_flags(m.group("long_comment"))
            self.out.append("{#" + ("-" if lstrip else "") + " " + ("-" if rstrip else "") + "#}")
            return
        if m.group("raw") is not None:
            body, lstrip, rstrip = _strip_flags(m.group("raw"))
            self.out.append(_var(f"_raw({self._emit_statement(body, line)})", lstrip, rstrip))
            return

        body, lstrip, rstrip = _strip_flags(m.group("body"))
        if body.startswith("!"):
            self.out.append("{#" + ("-" if lstrip else "") + " " + ("-" if rstrip else "") + "#}")
        elif body.startswith("#"):
            self._open_block(body[1:].strip(), lstrip, rstrip, line)
        elif body == "^":
            self._else("", lstrip, rstrip, line)
        elif body.startswith("^"):
            self._open_inverse(body[1:].strip(), lstrip, rstrip, line)
        elif body.startswith("/"):
            self._close_block(body[1:].strip(), lstrip, rstrip, line)
        elif body == "else" or body.startswith("else "):
            self._else(body[4:].strip(), lstrip, rstrip, line)
        elif body.startswith(">"):
            raise TemplateError(f"Partials are not supported ({{{{{body}}}}} on line {line})")
        elif body.startswith("&"):
            self.out.append(_var(f"_raw({self._emit_statement(body[1:].strip(), line)})", lstrip, rstrip))
        else:
            self.out.append(_var(self._emit_statement(body, line), lstrip, rstrip))

    def _standalone_span(self, m: re.Match[str]) -> tuple[int, int] | None:
        """
        (start, end) widened to the whole line when a block, else, close or
        comment tag is alone on its line; None otherwise.
        """
        if m.group("escape") or m.group("raw") is not None:
            return None
        if m.group("long_comment") is None:
            body, _, _ = _strip_flags(m.group("body"))
            if not (body.startswith(_STANDALONE_PREFIXES) or body == "else" or body.startswith("else ")):
                return None
        src = self.source
        line_start = src.rfind("\n", 0, m.start()) + 1
        if src[line_start : m.start()].strip(" \t"):
            return None
        nl = src.find("\n", m.end())
        line_end = len(src) if nl == -1 else nl + 1
        if src[m.end() : line_end].strip(" \t\r\n"):
            return None
        return line_start, line_end

    def run(self) -> str:
        pos = 0
        for m in _TAG_RE.finditer(self.source):
            start, end = self._standalone_span(m) or (m.start(), m.end())
            self._emit_text(self.source[pos:start])
            pos = end
            if m.group("escape"):
                self._emit_text(m.group(0)[1:])
                continue
            self._handle_tag(m)
        self._emit_text(self.source[pos:])
        if self.blocks:
            block = self.blocks[-1]
            raise TemplateError(f"Unclosed block {{{{#{block.name}}}}} opened on line {block.line}")
        return "".join(self.out)


def translate(template: str, helpers: Collection[str]) -> str:
    """
    Translate a dialect template to Jinja2 source.

    *helpers* is the set of helper names callable from the template; calling
    anything else raises MissingHelperError at translation time.
    """
    return _Translator(template, helpers).run()
