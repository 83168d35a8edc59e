"""
Tests for the query text renderer.

These tests verify that expression and query ASTs are turned back into
query text. We test extensively because text output is easy to get
wrong and hard to debug.

Tests cover:
    - Literals, names and escaping
    - Parentheses only where precedence requires them
    - CASE in INLINE and PRETTY layouts
    - Patterns and clause pipelines
    - Rendered text parsing back to the same AST
"""

import pytest
from cypher_case.backends.cypher_renderer import (
    RenderMode,
    escape_name,
    quote_string,
    render_expression,
    render_query,
    save_query_file,
)
from cypher_case.examples import DOCUMENTED_QUERIES
from cypher_case.expressions import (
    BinaryExpression,
    BinaryOperator,
    Literal,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
)
from cypher_case.parser import parse_expression, parse_query


def roundtrip(text):
    return render_expression(parse_expression(text))


class TestLiteralsAndNames:
    """Test leaf rendering."""

    def test_literals(self):
        assert render_expression(Literal(None)) == "null"
        assert render_expression(Literal(True)) == "true"
        assert render_expression(Literal(2.5)) == "2.5"
        assert render_expression(Literal(-1)) == "-1"

    def test_quote_string_escapes(self):
        assert quote_string("it's") == "'it\\'s'"
        assert quote_string("a\nb") == "'a\\nb'"

    def test_escape_name(self):
        assert escape_name("n") == "n"
        assert escape_name("my var") == "`my var`"
        assert escape_name("end") == "`end`"

    def test_reserved_property_key_left_bare(self):
        assert roundtrip("r.end") == "r.end"

    @pytest.mark.parametrize("name", ["end", "null", "TRUE", "my var"])
    def test_quoted_variable_parses_back(self, name):
        expr = VariableReference(name)
        assert parse_expression(render_expression(expr)) == expr

    def test_reserved_alias_parses_back(self):
        query = parse_query("MATCH (n) RETURN n.name AS `order`")
        text = render_query(query)
        assert text == "MATCH (n)\nRETURN n.name AS `order`"
        assert parse_query(text) == query

    @pytest.mark.parametrize("value", [float("inf"), float("-inf")])
    def test_infinite_float_parses_back(self, value):
        text = render_expression(Literal(value))
        assert parse_expression(text) == Literal(value)

    def test_nan_has_no_text_form(self):
        with pytest.raises(ValueError):
            render_expression(Literal(float("nan")))


class TestPrecedence:
    """Test parenthesization."""

    @pytest.mark.parametrize("text", [
        "a OR b AND c",
        "(a OR b) AND c",
        "1 + 2 * 3",
        "(1 + 2) * 3",
        "1 - (2 - 3)",
        "NOT a = 1",
        "(NOT a) = true",
        "n.age IS NULL",
        "(a = b) IS NULL",
        "x IN [1, 2, 3]",
        "-x ^ 2",
        "1 - -1",
        "-(-x)",
    ])
    def test_canonical_text_is_stable(self, text):
        assert roundtrip(text) == text

    def test_redundant_parentheses_removed(self):
        assert roundtrip("((1 + 2)) + (3)") == "1 + 2 + 3"

    def test_constructed_tree_gets_parentheses(self):
        expr = BinaryExpression(
            BinaryOperator.MULTIPLY,
            BinaryExpression(BinaryOperator.ADD, VariableReference("a"), Literal(1)),
            Literal(2),
        )
        assert render_expression(expr) == "(a + 1) * 2"

    def test_negation_of_negation(self):
        expr = UnaryExpression(UnaryOperator.NEGATE, Literal(-1))
        text = render_expression(expr)
        assert text == "-(-1)"
        assert parse_expression(text) == Literal(1)


class TestCaseRendering:
    """Test CASE layouts."""

    def test_simple_inline(self):
        text = "CASE n.eyes WHEN 'blue' THEN 1 WHEN 'brown' THEN 2 ELSE 3 END"
        assert roundtrip(text) == text

    def test_generic_inline_without_else(self):
        text = "CASE WHEN n.age IS NULL THEN -1 END"
        assert roundtrip(text) == text

    def test_else_null_is_kept(self):
        assert roundtrip("CASE WHEN a THEN 1 ELSE null END").endswith("ELSE null END")

    def test_pretty_layout(self):
        expr = parse_expression("CASE n.eyes WHEN 'blue' THEN 1 WHEN 'brown' THEN 2 ELSE 3 END")
        assert render_expression(expr, RenderMode.PRETTY) == (
            "CASE n.eyes\n"
            "  WHEN 'blue' THEN 1\n"
            "  WHEN 'brown' THEN 2\n"
            "  ELSE 3\n"
            "END"
        )

    def test_pretty_nested_indentation(self):
        expr = parse_expression("CASE WHEN a THEN CASE b WHEN 1 THEN 'x' END ELSE 'y' END")
        assert render_expression(expr, RenderMode.PRETTY) == (
            "CASE\n"
            "  WHEN a THEN CASE b\n"
            "    WHEN 1 THEN 'x'\n"
            "  END\n"
            "  ELSE 'y'\n"
            "END"
        )

    def test_case_operand_is_not_parenthesized(self):
        assert roundtrip("CASE WHEN a THEN 1 ELSE 2 END + 10") == "CASE WHEN a THEN 1 ELSE 2 END + 10"

    @pytest.mark.parametrize("mode", list(RenderMode))
    def test_rendered_text_parses_back(self, mode):
        expr = parse_expression(
            "CASE WHEN x > 0 THEN CASE x WHEN 1 THEN 'one' ELSE 'it\\'s many' END ELSE coalesce(y, -1) END"
        )
        assert parse_expression(render_expression(expr, mode)) == expr


class TestQueryRendering:
    """Test whole-query rendering."""

    def test_clause_per_line(self):
        query = parse_query(
            "MATCH (n:Person {name: 'Bob'})-[r:KNOWS|MARRIED]->(m) WHERE m.age > 30 "
            "WITH n, m ORDER BY m.name DESC SKIP 1 LIMIT 2 SET m.seen = true RETURN DISTINCT m.name AS name"
        )
        assert render_query(query).split("\n") == [
            "MATCH (n:Person {name: 'Bob'})-[r:KNOWS|MARRIED]->(m) WHERE m.age > 30",
            "WITH n, m ORDER BY m.name DESC SKIP 1 LIMIT 2",
            "SET m.seen = true",
            "RETURN DISTINCT m.name AS name",
        ]

    def test_incoming_and_anonymous_patterns(self):
        query = parse_query("MATCH (a)<--(b)--({x: 1}) RETURN a")
        assert render_query(query).startswith("MATCH (a)<--(b)--({x: 1})")

    @pytest.mark.parametrize("doc", DOCUMENTED_QUERIES, ids=lambda d: d.anchor)
    @pytest.mark.parametrize("mode", list(RenderMode))
    def test_documented_queries_render_stably(self, doc, mode):
        query = parse_query(doc.query)
        text = render_query(query, mode)
        reparsed = parse_query(text)
        assert render_query(reparsed, mode) == text
        assert list(reparsed.projection_expressions().values()) == list(query.projection_expressions().values())

    def test_save_query_file(self, tmp_path):
        path = tmp_path / "query.cypher"
        save_query_file(parse_query(DOCUMENTED_QUERIES[0].query), str(path))
        text = path.read_text(encoding="utf-8")
        assert text.startswith("MATCH (n:Person)\nRETURN CASE n.eyes\n  WHEN 'blue' THEN 1")
        assert text.endswith("END AS result, n.eyes\n")
