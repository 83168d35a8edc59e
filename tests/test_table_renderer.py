"""
Tests for the ASCII result table renderer.
"""

from cypher_case.backends.table_renderer import NULL_MARKER, format_value, render_table
from cypher_case.examples import build_person_graph, get_documented_query
from cypher_case.executor import QueryResult, run_query
from cypher_case.model import Graph


class TestFormatValue:
    """Test cell formatting."""

    def test_scalars(self):
        assert format_value(None) == NULL_MARKER
        assert format_value(True) == "true"
        assert format_value(3) == "3"
        assert format_value(2.5) == "2.5"
        assert format_value(float("-inf")) == "-Infinity"

    def test_strings_are_quoted(self):
        assert format_value("Alice") == '"Alice"'
        assert format_value('say "hi"') == '"say \\"hi\\""'

    def test_list(self):
        assert format_value([1, "a", None]) == '[1,"a",<null>]'

    def test_entities(self):
        g = Graph()
        a = g.add_node(["Person"], {"name": "A"})
        b = g.add_node(["Person"], {"name": "B"})
        rel = g.add_relationship(a, "KNOWS", b)
        assert format_value(a) == 'Node[0]{name:"A"}'
        assert format_value(rel) == ":KNOWS[0]{}"


class TestRenderTable:
    """Test the boxed layout."""

    def test_layout(self):
        result = QueryResult(columns=["n.name", "result"], rows=[("Alice", 2), ("Daniel", None)])
        assert render_table(result).split("\n") == [
            "+-------------------+",
            "| n.name   | result |",
            "+-------------------+",
            '| "Alice"  | 2      |',
            '| "Daniel" | <null> |',
            "+-------------------+",
            "2 rows",
        ]

    def test_single_row_footer(self):
        result = QueryResult(columns=["x"], rows=[(1,)])
        assert render_table(result).endswith("\n1 row")

    def test_empty_result(self):
        lines = render_table(QueryResult(columns=["x"])).split("\n")
        assert lines[-1] == "0 rows"
        assert len(lines) == 5

    def test_lines_have_equal_width(self):
        result = run_query(get_documented_query("case-generic").query, build_person_graph())
        lines = render_table(result).split("\n")[:-1]
        assert len({len(line) for line in lines}) == 1

    def test_properties_set_footer(self):
        doc = get_documented_query("case-result-in-succeeding-clause")
        text = render_table(run_query(doc.query, build_person_graph()))
        assert text.endswith("5 rows\nProperties set: 5")
