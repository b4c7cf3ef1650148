"""Unit tests for core.coerce."""

from preview_engine.core.coerce import (
    build_variable_tree,
    coerce_test_argument,
    parse_context,
)
from preview_engine.models import VariableTypeEnum


class TestCoerceTestArgument:
    def test_literals(self) -> None:
        assert coerce_test_argument("true") is True
        assert coerce_test_argument("false") is False
        assert coerce_test_argument("null") is None

    def test_literals_are_case_sensitive(self) -> None:
        assert coerce_test_argument("True") == "True"

    def test_numbers(self) -> None:
        assert coerce_test_argument("42") == 42
        assert coerce_test_argument(" 7 ") == 7
        assert coerce_test_argument("-3.5") == -3.5
        assert coerce_test_argument("1e3") == 1000.0

    def test_json(self) -> None:
        assert coerce_test_argument('{"a": 1}') == {"a": 1}
        assert coerce_test_argument("[1, 2]") == [1, 2]

    def test_malformed_json_stays_string(self) -> None:
        assert coerce_test_argument("{bad") == "{bad"

    def test_plain_strings(self) -> None:
        assert coerce_test_argument("hello") == "hello"
        assert coerce_test_argument("") == ""
        assert coerce_test_argument("12abc") == "12abc"

    def test_non_string_passthrough(self) -> None:
        assert coerce_test_argument(5) == 5


class TestParseContext:
    def test_object(self) -> None:
        assert parse_context('{"a": 1}') == ({"a": 1}, None)

    def test_blank(self) -> None:
        assert parse_context("") == ({}, None)
        assert parse_context(None) == ({}, None)

    def test_invalid_json(self) -> None:
        ctx, error = parse_context("{nope")
        assert ctx == {}
        assert error

    def test_not_an_object(self) -> None:
        ctx, error = parse_context("[1]")
        assert ctx == {}
        assert error == "Context must be a JSON object, got array"


class TestBuildVariableTree:
    def test_tree(self) -> None:
        nodes = build_variable_tree(
            {"user": {"name": "Ann", "first name": "A"}, "items": [1], "flag": None}
        )
        by_key = {n.key: n for n in nodes}
        user = by_key["user"]
        assert user.type == VariableTypeEnum.OBJECT
        assert user.value is None
        assert [c.path for c in user.children or []] == ["user.name", "user.[first name]"]
        items = by_key["items"]
        assert items.type == VariableTypeEnum.ARRAY
        assert items.children is not None
        assert items.children[0].path == "items[0]"
        assert items.children[0].value == 1
        assert by_key["flag"].type == VariableTypeEnum.NULL
        assert by_key["flag"].children is None

    def test_scalar_has_no_nodes(self) -> None:
        assert build_variable_tree(3) == []
