"""Unit tests for engines.functions.compiler."""

import pytest

from preview_engine.engines.functions import (
    FunctionCompileError,
    compile_function,
    run_function_test,
)
from preview_engine.engines.functions.compiler import (
    build_function_source,
    format_value,
    index_functions,
    normalize_functions,
)
from preview_engine.engines.sandbox import build_restricted_globals


class TestCompileFunction:
    def test_simple(self) -> None:
        double = compile_function(["x"], "return x * 2", name="double")
        assert double(21) == 42
        assert double.invoke([4]) == 8

    def test_missing_args_are_none(self) -> None:
        fn = compile_function(["a", "b"], "return b is None", name="check")
        assert fn(1) is True

    def test_extra_args_dropped(self) -> None:
        fn = compile_function(["a"], "return a", name="first")
        assert fn(1, 2, 3) == 1

    def test_multiline_body(self) -> None:
        body = """
        total = 0
        for item in items:
            total += item["price"]
        return round(total * rate, 2)
        """
        fn = compile_function(["items", "rate"], body, name="tax")
        assert fn([{"price": 10}, {"price": 5}], 0.2) == 3.0

    def test_blank_body_returns_none(self) -> None:
        assert compile_function([], "   ", name="noop")() is None

    def test_syntax_error(self) -> None:
        with pytest.raises(FunctionCompileError, match="Syntax error in 'broken'"):
            compile_function(["x"], "return (", name="broken")

    def test_invalid_names(self) -> None:
        with pytest.raises(FunctionCompileError):
            compile_function([], "return 1", name="not-valid")
        with pytest.raises(FunctionCompileError):
            compile_function(["class"], "return 1", name="fine")
        with pytest.raises(FunctionCompileError):
            compile_function(["a", "a"], "return 1", name="fine")

    def test_builtins_are_restricted(self) -> None:
        fn = compile_function([], "return open('/etc/passwd')", name="reader")
        with pytest.raises(NameError):
            fn()

    def test_private_attributes_rejected_at_compile(self) -> None:
        with pytest.raises(FunctionCompileError):
            compile_function(["x"], "return x.__class__", name="peek")

    def test_shared_namespace_binds_wrapper(self) -> None:
        ns = build_restricted_globals({})
        compile_function(["x"], "return x + 1", name="inc", namespace=ns)
        twice = compile_function(["x"], "return inc(inc(x))", name="twice", namespace=ns)
        assert twice(1) == 3


class TestFunctionSource:
    def test_wraps_body(self) -> None:
        assert build_function_source("f", ["a"], "return a") == "def f(a):\n    return a"

    def test_dedents(self) -> None:
        src = build_function_source("f", [], "    x = 1\n    return x")
        assert src == "def f():\n    x = 1\n    return x"


class TestNormalizeFunctions:
    def test_dicts_and_param_string(self) -> None:
        (f,) = normalize_functions([{"name": "f", "params": "a, b", "body": "return a"}])
        assert f.params == ["a", "b"]

    def test_invalid_definition(self) -> None:
        with pytest.raises(FunctionCompileError):
            normalize_functions([{"name": "_hidden", "body": ""}])

    def test_last_duplicate_wins(self) -> None:
        defs = normalize_functions(
            [{"name": "f", "body": "return 1"}, {"name": "f", "body": "return 2"}]
        )
        assert index_functions(defs)["f"].body == "return 2"


class TestFormatValue:
    def test_scalars(self) -> None:
        assert format_value(None) == "null"
        assert format_value(True) == "true"
        assert format_value(3) == "3"
        assert format_value("x") == "x"

    def test_containers_are_json(self) -> None:
        assert format_value({"a": 1}) == '{\n  "a": 1\n}'
        assert format_value([1]) == "[\n  1\n]"


class TestRunFunctionTest:
    def test_number_argument_coerced(self) -> None:
        r = run_function_test(
            {"name": "double", "params": ["x"], "body": "return x * 2"}, {"x": "21"}
        )
        assert r.output == "42"
        assert r.error is None

    def test_json_argument(self) -> None:
        r = run_function_test(
            {"name": "keys", "params": ["o"], "body": "return sorted(o.keys())"},
            {"o": '{"b": 1, "a": 2}'},
        )
        assert r.output == '[\n  "a",\n  "b"\n]'

    def test_missing_argument_is_none(self) -> None:
        r = run_function_test({"name": "f", "params": ["x"], "body": "return x"}, {})
        assert r.output == "null"

    def test_runtime_error(self) -> None:
        r = run_function_test(
            {"name": "f", "params": [], "body": "raise ValueError('nope')"}
        )
        assert r.output is None
        assert r.error == "nope"

    def test_empty_message_uses_class_name(self) -> None:
        r = run_function_test({"name": "f", "params": [], "body": "raise KeyError()"})
        assert r.error == "KeyError"

    def test_compile_error(self) -> None:
        r = run_function_test({"name": "f", "params": [], "body": "return ("})
        assert r.error is not None
        assert "Syntax error" in r.error
