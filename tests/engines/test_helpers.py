"""Unit tests for engines.template.helpers and filters."""

import pytest

from preview_engine.engines.template import HelperRegistry, MissingHelperError
from preview_engine.engines.template.filters import (
    display_value,
    in_list,
    lookup,
    sql_string,
    truthy,
)


def _fn(name: str, params: list[str], body: str) -> dict:
    return {"name": name, "params": params, "body": body}


class TestHelperRegistry:
    def test_builtins_and_dispatcher_registered(self) -> None:
        reg = HelperRegistry()
        assert "uppercase" in reg
        assert "func" in reg
        assert "double" not in reg

    def test_user_function_is_direct_helper(self) -> None:
        reg = HelperRegistry([_fn("double", ["x"], "return x * 2")])
        assert reg.call("double", 21) == 42

    def test_dispatch(self) -> None:
        reg = HelperRegistry([_fn("double", ["x"], "return x * 2")])
        assert reg.dispatch("double", 21) == 42

    def test_dispatch_not_found(self) -> None:
        assert HelperRegistry().dispatch("calcTax", 1) == "[Function 'calcTax' not found]"

    def test_dispatch_runtime_error_localized(self) -> None:
        reg = HelperRegistry([_fn("boom", [], "raise ValueError('bad input')")])
        assert reg.dispatch("boom") == "[Error in 'boom': bad input]"

    def test_dispatch_contains_base_exceptions(self) -> None:
        reg = HelperRegistry([_fn("halt", [], "raise ValueError.mro()[2]('x')")])
        assert reg.dispatch("halt") == "[Error in 'halt': x]"

    def test_direct_call_error_propagates(self) -> None:
        reg = HelperRegistry([_fn("boom", [], "raise ValueError('bad input')")])
        with pytest.raises(ValueError, match="bad input"):
            reg.call("boom")

    def test_compile_error_does_not_break_registry(self) -> None:
        reg = HelperRegistry([_fn("bad", [], "return ("), _fn("ok", [], "return 1")])
        assert "bad" not in reg
        assert reg.call("ok") == 1
        assert reg.dispatch("bad").startswith("[Error in 'bad': Syntax error")

    def test_user_function_overrides_builtin(self) -> None:
        reg = HelperRegistry([_fn("uppercase", ["s"], "return 'custom'")])
        assert reg.call("uppercase", "x") == "custom"

    def test_missing_helper(self) -> None:
        with pytest.raises(MissingHelperError) as exc:
            HelperRegistry().call("nope")
        assert exc.value.name == "nope"
        assert str(exc.value) == 'Missing helper: "nope"'

    def test_registries_are_independent(self) -> None:
        a = HelperRegistry([_fn("only_a", [], "return 1")])
        b = HelperRegistry()
        assert "only_a" in a
        assert "only_a" not in b

    def test_register(self) -> None:
        reg = HelperRegistry()
        reg.register("shout", lambda s: s + "!")
        assert reg.call("shout", "hi") == "hi!"


class TestBuiltinHelpers:
    def test_case(self) -> None:
        reg = HelperRegistry()
        assert reg.call("uppercase", "ab") == "AB"
        assert reg.call("lowercase", "AB") == "ab"
        assert reg.call("uppercase", None) == ""

    def test_split_join(self) -> None:
        reg = HelperRegistry()
        assert reg.call("split", "a-b", "-") == ["a", "b"]
        assert reg.call("join", ["a", 1, True], "|") == "a|1|true"
        assert reg.call("join", ["a", "b"]) == "a,b"

    def test_first_last(self) -> None:
        reg = HelperRegistry()
        assert reg.call("first", [1, 2]) == 1
        assert reg.call("last", [1, 2]) == 2
        assert reg.call("first", []) is None

    def test_comparisons_are_numeric(self) -> None:
        reg = HelperRegistry()
        assert reg.call("lt", "2", "10") is True
        assert reg.call("gte", 3, 3.0) is True
        assert reg.call("eq", "a", "a") is True
        assert reg.call("ne", 1, 2) is True

    def test_logic(self) -> None:
        reg = HelperRegistry()
        assert reg.call("and", 1, "x", [0]) is True
        assert reg.call("or", 0, [], None) is False
        assert reg.call("not", {}) is False

    def test_json(self) -> None:
        assert HelperRegistry().call("json", {"a": [1, None]}) == '{"a": [1, null]}'


class TestFilters:
    def test_display_value(self) -> None:
        assert display_value(None) == ""
        assert display_value(True) == "true"
        assert display_value(2.0) == "2"
        assert display_value(2.5) == "2.5"
        assert display_value([1, "a"]) == "1,a"
        assert display_value({"a": 1}) == '{"a": 1}'
        assert display_value(float("nan")) == "NaN"

    def test_truthy(self) -> None:
        assert truthy({}) is True
        assert truthy([]) is False
        assert truthy(0) is False
        assert truthy("0") is True
        assert truthy(None) is False

    def test_lookup(self) -> None:
        data = {"user": {"roles": ["a", "b"], "first name": "Ann"}}
        assert lookup(data, "user", "roles", "1") == "b"
        assert lookup(data, "user", "roles", "length") == 2
        assert lookup(data, "user", "first name") == "Ann"
        assert lookup(data, "user", "missing", "deeper") is None
        assert lookup(data, "user", "roles", "9") is None

    def test_lookup_never_reads_attributes(self) -> None:
        assert lookup("text", "upper") is None
        assert lookup(object(), "__class__") is None

    def test_sql_helpers(self) -> None:
        assert sql_string("O'Brien") == "'O''Brien'"
        assert sql_string(None) == "NULL"
        assert in_list([1, "a"]) == "(1, 'a')"
        assert in_list([]) == "(SELECT 1 WHERE 1=0)"
