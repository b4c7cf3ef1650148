"""Unit tests for engines.template.dialect (translation to Jinja2 source)."""

import pytest

from preview_engine.engines.template import MissingHelperError, TemplateError
from preview_engine.engines.template.dialect import (
    Literal,
    PathExpr,
    SubExpr,
    parse_expression,
    translate,
)

HELPERS = frozenset({"func", "uppercase", "gt", "double"})


class TestParseExpression:
    def test_path_and_literals(self) -> None:
        params = parse_expression("uppercase user.name 'x' 3 2.5 true null")
        assert isinstance(params[0], PathExpr)
        assert params[0].simple_name == "uppercase"
        assert params[1].parts == ["user", "name"]
        assert [p.value for p in params[2:]] == ["x", 3, 2.5, True, None]
        assert all(isinstance(p, Literal) for p in params[2:])

    def test_subexpression(self) -> None:
        (sub,) = parse_expression("(gt total 100)")
        assert isinstance(sub, SubExpr)
        assert sub.name == "gt"
        assert len(sub.params) == 2

    def test_bracket_segment(self) -> None:
        (p,) = parse_expression("user.[first name]")
        assert p.parts == ["user", "first name"]

    def test_parent_and_this(self) -> None:
        (p,) = parse_expression("../title")
        assert p.ups == 1 and p.parts == ["title"]
        (t,) = parse_expression("this.sku")
        assert t.this and t.parts == ["sku"]
        (d,) = parse_expression("@index")
        assert d.data and d.parts == ["index"]

    def test_hash_arguments_rejected(self) -> None:
        with pytest.raises(TemplateError, match="hash arguments"):
            parse_expression("uppercase x=1")

    def test_unclosed_paren(self) -> None:
        with pytest.raises(TemplateError, match="unclosed"):
            parse_expression("(gt a 1")


class TestTranslate:
    def test_plain_path(self) -> None:
        assert translate("Hi {{ name }}", HELPERS) == 'Hi {{ _lookup(_s0, "name") }}'

    def test_helper_call(self) -> None:
        out = translate("{{ func 'double' 21 }}", HELPERS)
        assert out == '{{ _h.call("func", "double", 21) }}'

    def test_bare_helper_name_is_a_call(self) -> None:
        assert translate("{{ double }}", HELPERS) == '{{ _h.call("double") }}'

    def test_each_uses_scope_variables(self) -> None:
        out = translate("{{#each xs}}{{this}}{{/each}}", HELPERS)
        assert out == '{% for _k1, _s1 in _pairs(_lookup(_s0, "xs")) %}{{ _s1 }}{% endfor %}'

    def test_text_braces_are_escaped(self) -> None:
        out = translate('{"a": {{ a }}}', HELPERS)
        assert out == '{"a": {{ _lookup(_s0, "a") }}}'
        assert translate("{%", HELPERS) == "{{ '{' }}%"

    def test_unknown_helper(self) -> None:
        with pytest.raises(MissingHelperError):
            translate("{{ nope 1 }}", HELPERS)
        with pytest.raises(MissingHelperError):
            translate("{{#nope}}x{{/nope}}", HELPERS)

    def test_mismatched_block(self) -> None:
        with pytest.raises(TemplateError, match="if doesn't match each"):
            translate("{{#if a}}x{{/each}}", HELPERS)

    def test_unclosed_block(self) -> None:
        with pytest.raises(TemplateError, match=r"Unclosed block \{\{#each\}\} opened on line 2"):
            translate("a\n{{#each xs}}x", HELPERS)

    def test_stray_close(self) -> None:
        with pytest.raises(TemplateError, match="Unexpected closing tag"):
            translate("{{/if}}", HELPERS)

    def test_partials_not_supported(self) -> None:
        with pytest.raises(TemplateError, match="Partials"):
            translate("{{> header }}", HELPERS)

    def test_else_outside_block(self) -> None:
        with pytest.raises(TemplateError):
            translate("{{else}}", HELPERS)
