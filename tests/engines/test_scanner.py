"""Unit tests for engines.template.scanner."""

from preview_engine.engines.template import scan_missing_functions
from preview_engine.engines.template.scanner import find_function_references
from preview_engine.models import FunctionDefinition


class TestScanner:
    def test_both_patterns(self) -> None:
        t = "{{#func:a(1)}} {{ func 'b' }} {{func \"c\" 2}} {{ #func:d ( x ) }}"
        assert find_function_references(t) == {"a", "b", "c", "d"}

    def test_missing(self) -> None:
        t = "{{#func:calcTax(1)}} {{ func 'fmt' x }}"
        assert scan_missing_functions(t, [{"name": "fmt", "params": ["x"], "body": ""}]) == {"calcTax"}

    def test_models_accepted(self) -> None:
        fns = [FunctionDefinition(name="calcTax", params=["x"], body="return x")]
        assert scan_missing_functions("{{#func:calcTax(1)}}", fns) == set()

    def test_direct_helper_calls_not_scanned(self) -> None:
        assert scan_missing_functions("{{ calcTax 1 }}", []) == set()

    def test_no_functions(self) -> None:
        assert scan_missing_functions("{{#func:x()}}") == {"x"}
        assert scan_missing_functions("plain", None) == set()
