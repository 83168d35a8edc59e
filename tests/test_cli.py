"""
Tests for the command-line entry point.
"""

import json
from dataclasses import replace

import pytest
import yaml
from cypher_case import cli
from cypher_case.cli import main
from cypher_case.examples import DOCUMENTED_QUERIES, build_person_graph
from cypher_case.serialization import graph_to_yaml


QUERY = "MATCH (n:Person) RETURN n.name, CASE n.eyes WHEN 'blue' THEN 1 ELSE 0 END AS blue"


def test_table_output(capsys):
    assert main([QUERY]) == 0
    out = capsys.readouterr().out
    assert "| n.name    | blue |" in out
    assert '| "Bob"     | 1    |' in out
    assert out.rstrip().endswith("5 rows")


def test_json_output(capsys):
    assert main([QUERY, "--format", "json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["columns"] == ["n.name", "blue"]
    assert payload["rows"][1] == ["Bob", 1]
    assert payload["stats"]["properties_set"] == 0


def test_yaml_output_with_nodes(capsys):
    assert main(["MATCH (n {name: 'Alice'}) RETURN n", "--format", "yaml"]) == 0
    payload = yaml.safe_load(capsys.readouterr().out)
    assert payload["rows"][0][0]["properties"]["name"] == "Alice"


def test_parameters_are_typed(capsys):
    query = "MATCH (n:Person) WHERE n.age > $min RETURN n.name"
    assert main([query, "--param", "min=40", "--format", "json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["rows"] == [["Charlie"], ["Eskil"]]


def test_query_from_file_and_graph_fixture(tmp_path, capsys):
    graph_path = tmp_path / "people.yaml"
    graph_path.write_text(graph_to_yaml(build_person_graph()), encoding="utf-8")
    query_path = tmp_path / "query.cypher"
    query_path.write_text("MATCH (n:Person) WHERE n.age IS NULL RETURN n.name", encoding="utf-8")

    assert main(["--file", str(query_path), "--graph", str(graph_path), "--format", "json"]) == 0
    assert json.loads(capsys.readouterr().out)["rows"] == [["Daniel"]]


def test_render_and_analyze(capsys):
    query = "MATCH (n) RETURN CASE n.age WHEN null THEN -1 ELSE n.age END AS a"
    assert main([query, "--render", "--pretty", "--analyze"]) == 0
    out = capsys.readouterr().out
    assert "RETURN CASE n.age\n  WHEN null THEN -1\n  ELSE n.age\nEND AS a" in out
    assert "CASE expressions: 1 (simple 1, generic 0)" in out
    assert "warning: WHEN null in simple" in out


def test_syntax_error_reported(capsys):
    assert main(["MATCH (n) RETURN CASE WHEN true THEN 1"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("error: Expected END")


def test_missing_graph_file(capsys, tmp_path):
    assert main([QUERY, "--graph", str(tmp_path / "missing.yaml")]) == 1
    assert "error:" in capsys.readouterr().err


def test_query_required():
    with pytest.raises(SystemExit):
        main([])


def test_bad_parameter():
    with pytest.raises(SystemExit):
        main([QUERY, "--param", "novalue"])


def test_examples(capsys):
    assert main(["--examples"]) == 0
    out = capsys.readouterr().out
    assert "== case-simple:" in out
    assert "MISMATCH" not in out


def test_unreadable_parameter_value():
    with pytest.raises(SystemExit):
        main([QUERY, "--param", "x=[1"])


@pytest.mark.parametrize("content", [
    "nodes: [{labels: [Person]}]",
    "nodes: [{id: 1}]\nrelationships: [{id: 0, type: KNOWS, start: 1}]",
    "nodes: [{id: 1\n",
    "- just\n- a list\n",
])
def test_malformed_graph_file(tmp_path, capsys, content):
    graph_path = tmp_path / "broken.yaml"
    graph_path.write_text(content, encoding="utf-8")

    assert main([QUERY, "--graph", str(graph_path)]) == 1
    assert capsys.readouterr().err.startswith("error:")


def test_examples_check_properties_set(monkeypatch, capsys):
    doc = next(d for d in DOCUMENTED_QUERIES if d.anchor == "case-result-in-succeeding-clause")
    monkeypatch.setattr(cli, "DOCUMENTED_QUERIES", (replace(doc, properties_set=0),))

    assert main(["--examples"]) == 1
    assert "[MISMATCH]" in capsys.readouterr().out
