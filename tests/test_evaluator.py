"""
Tests for the Expression Evaluator.

Covers the CASE contract in both forms, null propagation, three-valued
logic, equality/ordering rules, arithmetic and scalar functions.
"""

import math

import pytest
from cypher_case.errors import (
    EvaluationError,
    EvaluationTypeError,
    UnboundParameterError,
    UnboundVariableError,
    UnknownFunctionError,
)
from cypher_case.evaluator import Evaluator, equals, evaluate, to_string
from cypher_case.expressions import (
    CaseAlternative,
    CaseExpression,
    FunctionCall,
    Literal,
)
from cypher_case.model import Graph
from cypher_case.parser import parse_expression


def ev(text, row=None, **params):
    return evaluate(parse_expression(text), row or {}, params)


class RecordingEvaluator(Evaluator):
    """Records every function call so lazy evaluation can be observed."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def evaluate(self, expr, row):
        if isinstance(expr, FunctionCall):
            self.calls.append(expr)
        return super().evaluate(expr, row)


class TestSimpleCase:
    """CASE test WHEN value THEN result ... END"""

    def test_first_equal_value_wins(self):
        assert ev("CASE 'brown' WHEN 'blue' THEN 1 WHEN 'brown' THEN 2 ELSE 3 END") == 2

    def test_else_when_nothing_matches(self):
        assert ev("CASE 'green' WHEN 'blue' THEN 1 WHEN 'brown' THEN 2 ELSE 3 END") == 3

    def test_no_else_yields_null(self):
        assert ev("CASE 'green' WHEN 'blue' THEN 1 END") is None

    def test_else_may_be_null(self):
        assert ev("CASE 1 WHEN 2 THEN 'two' ELSE null END") is None

    def test_null_never_equals_null(self):
        """WHEN null is never taken, not even when the test is null."""
        assert ev("CASE null WHEN null THEN 'matched' ELSE 'fell through' END") == "fell through"

    def test_null_test_falls_to_else(self):
        assert ev("CASE x WHEN 1 THEN 'one' ELSE 'other' END", {"x": None}) == "other"

    def test_integer_matches_float(self):
        assert ev("CASE 1 WHEN 1.0 THEN 'same' END") == "same"

    def test_boolean_does_not_match_integer(self):
        assert ev("CASE true WHEN 1 THEN 'one' ELSE 'no' END") == "no"

    def test_first_match_wins_over_later_duplicate(self):
        assert ev("CASE 2 WHEN 2 THEN 'first' WHEN 2 THEN 'second' END") == "first"

    def test_results_may_differ_in_type(self):
        text = "CASE x WHEN 1 THEN 'one' WHEN 2 THEN 2.5 ELSE false END"
        assert ev(text, {"x": 1}) == "one"
        assert ev(text, {"x": 2}) == 2.5
        assert ev(text, {"x": 3}) is False

    def test_test_expression_evaluated_once(self):
        evaluator = RecordingEvaluator()
        expr = parse_expression("CASE toUpper(x) WHEN 'A' THEN 1 WHEN 'B' THEN 2 WHEN 'C' THEN 3 END")
        assert evaluator.evaluate(expr, {"x": "c"}) == 3
        assert [c.name for c in evaluator.calls] == ["toUpper"]


class TestGenericCase:
    """CASE WHEN predicate THEN result ... END"""

    def test_first_true_predicate_wins(self):
        text = "CASE WHEN x > 10 THEN 'big' WHEN x > 5 THEN 'medium' ELSE 'small' END"
        assert ev(text, {"x": 20}) == "big"
        assert ev(text, {"x": 7}) == "medium"
        assert ev(text, {"x": 1}) == "small"

    def test_null_predicate_falls_through(self):
        """An unknown predicate is not true."""
        assert ev("CASE WHEN x < 40 THEN 2 ELSE 3 END", {"x": None}) == 3

    def test_is_null_predicate(self):
        assert ev("CASE WHEN x IS NULL THEN -1 ELSE x - 10 END", {"x": None}) == -1
        assert ev("CASE WHEN x IS NULL THEN -1 ELSE x - 10 END", {"x": 38}) == 28

    def test_no_match_no_else_is_null(self):
        assert ev("CASE WHEN false THEN 1 WHEN null THEN 2 END") is None

    def test_non_boolean_predicate_rejected(self):
        with pytest.raises(EvaluationTypeError):
            ev("CASE WHEN 1 THEN 'one' END")

    def test_later_alternatives_are_not_evaluated(self):
        """Only the winning THEN runs; nothing after it is touched."""
        evaluator = RecordingEvaluator()
        expr = parse_expression(
            "CASE WHEN true THEN toUpper('a') WHEN toLower('B') = 'b' THEN toLower('C') ELSE abs(-1) END"
        )
        assert evaluator.evaluate(expr, {}) == "A"
        assert [c.name for c in evaluator.calls] == ["toUpper"]

    def test_skipped_branch_errors_do_not_surface(self):
        """A branch that would fail is harmless when it is not selected."""
        assert ev("CASE WHEN true THEN 1 ELSE 1 / 0 END") == 1

    def test_nested_case(self):
        text = "CASE WHEN x > 0 THEN CASE x WHEN 1 THEN 'one' ELSE 'many' END ELSE 'none' END"
        assert ev(text, {"x": 1}) == "one"
        assert ev(text, {"x": 5}) == "many"
        assert ev(text, {"x": 0}) == "none"

    def test_deterministic(self):
        expr = parse_expression("CASE WHEN x.age < 40 THEN 'young' ELSE 'old' END")
        g = Graph()
        node = g.add_node(["Person"], {"age": 38})
        evaluator = Evaluator()
        results = {evaluator.evaluate(expr, {"x": node}) for _ in range(5)}
        assert results == {"young"}

    def test_constructed_case_without_else(self):
        case = CaseExpression((CaseAlternative(Literal(False), Literal(1)),))
        assert Evaluator().evaluate(case, {}) is None


class TestNullPropagation:
    """null flows through arithmetic, comparison and functions."""

    @pytest.mark.parametrize("text", [
        "null - 10",
        "null + 'a'",
        "null * 2",
        "-x",
        "null < 1",
        "null = null",
        "null <> 1",
        "toUpper(null)",
        "x.age",
        "NOT null",
    ])
    def test_yields_null(self, text):
        assert ev(text, {"x": None}) is None

    def test_missing_property_is_null(self):
        g = Graph()
        daniel = g.add_node(["Person"], {"name": "Daniel"})
        assert ev("n.age", {"n": daniel}) is None
        assert ev("n.age - 10", {"n": daniel}) is None

    def test_coalesce_skips_nulls(self):
        assert ev("coalesce(null, x, 7)", {"x": None}) == 7
        assert ev("coalesce(null)") is None


class TestThreeValuedLogic:
    """Kleene AND / OR / XOR / NOT."""

    @pytest.mark.parametrize("text,expected", [
        ("true AND null", None),
        ("false AND null", False),
        ("true OR null", True),
        ("false OR null", None),
        ("true XOR null", None),
        ("true XOR false", True),
        ("NOT false", True),
    ])
    def test_truth_table(self, text, expected):
        assert ev(text) is expected

    def test_non_boolean_operand_rejected(self):
        with pytest.raises(EvaluationTypeError):
            ev("1 AND true")


class TestComparison:
    """Equality and ordering rules."""

    def test_equals_helper(self):
        assert equals(1, 1.0) is True
        assert equals(True, 1) is False
        assert equals("1", 1) is False
        assert equals(None, None) is None
        assert equals([1, None], [1, None]) is None
        assert equals([1, None], [2, None]) is False

    def test_incomparable_types_give_null(self):
        assert ev("'a' < 1") is None

    def test_string_ordering(self):
        assert ev("'apple' < 'banana'") is True

    def test_chained_comparison(self):
        assert ev("1 < x < 10", {"x": 5}) is True
        assert ev("1 < x < 10", {"x": 50}) is False

    def test_in_list(self):
        assert ev("'blue' IN ['blue', 'green']") is True
        assert ev("'red' IN ['blue', 'green']") is False
        assert ev("'red' IN ['blue', null]") is None
        assert ev("null IN [1]") is None
        assert ev("null IN []") is False


class TestArithmetic:
    """Numeric and string operators."""

    def test_integer_division_truncates(self):
        assert ev("7 / 2") == 3
        assert ev("-7 / 2") == -3
        assert ev("-7 % 3") == -1

    def test_float_division(self):
        assert ev("7.0 / 2") == 3.5

    def test_integer_division_by_zero(self):
        with pytest.raises(EvaluationError):
            ev("1 / 0")

    def test_float_division_by_zero(self):
        assert math.isinf(ev("1.0 / 0"))

    def test_power_is_float(self):
        assert ev("2 ^ 3") == 8.0
        assert isinstance(ev("2 ^ 3"), float)

    def test_string_concatenation(self):
        assert ev("'age: ' + 38") == "age: 38"
        assert ev("'a' + 'b'") == "ab"

    def test_type_mismatch(self):
        with pytest.raises(EvaluationTypeError):
            ev("'a' - 1")


class TestFunctionsAndBindings:
    """Scalar functions, parameters and variables."""

    def test_to_string(self):
        assert to_string(True) == "true"
        assert to_string(2.0) == "2.0"
        assert ev("toString(38)") == "38"

    def test_case_insensitive_function_names(self):
        assert ev("TOUPPER('abc')") == "ABC"

    def test_size_and_abs(self):
        assert ev("size('Alice')") == 5
        assert ev("abs(-3)") == 3

    def test_labels_and_id(self):
        g = Graph()
        node = g.add_node(["Person"], {"name": "Alice"})
        assert ev("labels(n)", {"n": node}) == ["Person"]
        assert ev("id(n)", {"n": node}) == 0

    def test_unknown_function(self):
        with pytest.raises(UnknownFunctionError):
            ev("count(x)", {"x": 1})

    def test_parameter(self):
        assert ev("CASE WHEN x > $limit THEN 'over' ELSE 'under' END", {"x": 5}, limit=3) == "over"

    def test_missing_parameter(self):
        with pytest.raises(UnboundParameterError):
            ev("$missing")

    def test_unbound_variable(self):
        with pytest.raises(UnboundVariableError):
            ev("CASE m.eyes WHEN 'blue' THEN 1 END")

    def test_property_of_scalar_rejected(self):
        with pytest.raises(EvaluationTypeError):
            ev("x.name", {"x": 5})
