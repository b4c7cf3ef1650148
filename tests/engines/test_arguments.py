"""Unit tests for engines.functions.arguments."""

from preview_engine.engines.functions import split_arguments


class TestSplitArguments:
    def test_quoted_comma_stays_in_one_argument(self) -> None:
        assert split_arguments('a, "b,c", d') == ["a", '"b,c"', "d"]

    def test_single_quotes(self) -> None:
        assert split_arguments("'x, y', z") == ["'x, y'", "z"]

    def test_blank_input(self) -> None:
        assert split_arguments("") == []
        assert split_arguments("   ") == []

    def test_empty_items_are_kept(self) -> None:
        assert split_arguments("a,,b") == ["a", "", "b"]
        assert split_arguments("a,") == ["a", ""]

    def test_parentheses_are_not_tracked(self) -> None:
        assert split_arguments("f(a, b)") == ["f(a", "b)"]

    def test_unterminated_quote_swallows_rest(self) -> None:
        assert split_arguments('"a, b') == ['"a, b']

    def test_other_quote_inside_quotes(self) -> None:
        assert split_arguments("\"it's\", 2") == ["\"it's\"", "2"]
