"""
Command-line entry point.

    cypher-case "MATCH (n:Person) RETURN CASE n.eyes WHEN 'blue' THEN 1 ELSE 0 END AS blue"
    cypher-case --file query.cypher --graph people.yaml --param min_age=30
    cypher-case --examples

Without --graph the built-in five-person example graph is used.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from cypher_case.analyzer import analyze_query
from cypher_case.backends.cypher_renderer import RenderMode, render_query
from cypher_case.backends.table_renderer import render_table
from cypher_case.errors import CypherCaseError
from cypher_case.examples import DOCUMENTED_QUERIES, build_person_graph
from cypher_case.executor import QueryResult, execute
from cypher_case.model import Node, Relationship
from cypher_case.parser import parse_query
from cypher_case.serialization import load_graph_file, node_to_dict, relationship_to_dict


logger = logging.getLogger(__name__)


def _parse_parameters(pairs: List[str]) -> Dict[str, Any]:
    """Turn ``name=value`` pairs into a parameter map; values are read as YAML scalars."""
    parameters: Dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            raise argparse.ArgumentTypeError(f"Parameter must look like name=value, got {pair!r}")
        try:
            parameters[name.lstrip("$")] = yaml.safe_load(raw) if raw else None
        except yaml.YAMLError as e:
            raise argparse.ArgumentTypeError(f"Parameter {name!r} has an unreadable value {raw!r}: {e}") from e
    return parameters


def _plain(value: Any) -> Any:
    if isinstance(value, Node):
        return node_to_dict(value)
    if isinstance(value, Relationship):
        return relationship_to_dict(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def format_result(result: QueryResult, fmt: str) -> str:
    if fmt == "table":
        return render_table(result)
    payload = {
        "columns": result.columns,
        "rows": [[_plain(v) for v in row] for row in result.rows],
        "stats": result.stats,
    }
    if fmt == "json":
        return json.dumps(payload, indent=2)
    return yaml.safe_dump(payload, sort_keys=False)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cypher-case",
        description="Run CASE-expression queries against an in-memory property graph",
    )
    parser.add_argument("query", nargs="?", help="Query text ('-' reads from stdin)")
    parser.add_argument("--file", "-f", help="Read the query from a file")
    parser.add_argument("--graph", "-g", help="Graph fixture (.yaml, .yml or .json); defaults to the example graph")
    parser.add_argument("--param", "-p", action="append", default=[], metavar="NAME=VALUE",
                        help="Query parameter; may be repeated")
    parser.add_argument("--format", choices=["table", "json", "yaml"], default="table", help="Output format")
    parser.add_argument("--analyze", action="store_true", help="Print CASE diagnostics before the result")
    parser.add_argument("--render", action="store_true", help="Print the normalised query text before the result")
    parser.add_argument("--pretty", action="store_true", help="Lay out CASE alternatives one per line with --render")
    parser.add_argument("--examples", action="store_true", help="Run the documented example queries")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def _read_query(args: argparse.Namespace) -> Optional[str]:
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            return f.read()
    if args.query == "-":
        return sys.stdin.read()
    return args.query


def _run_examples(fmt: str) -> int:
    failures = 0
    for doc in DOCUMENTED_QUERIES:
        result = execute(parse_query(doc.query), build_person_graph())
        ok = (
            tuple(result.columns) == doc.columns
            and tuple(result.rows) == doc.rows
            and result.stats["properties_set"] == doc.properties_set
        )
        if not ok:
            failures += 1
        print(f"== {doc.anchor}: {doc.title} [{'ok' if ok else 'MISMATCH'}]")
        print(doc.query.strip())
        print(format_result(result, fmt))
        print()
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.examples:
        return _run_examples(args.format)

    try:
        parameters = _parse_parameters(args.param)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    text = _read_query(args)
    if not text:
        parser.error("a query, --file or --examples is required")

    try:
        graph = load_graph_file(args.graph) if args.graph else build_person_graph()
        logger.debug("Loaded graph %r with %d node(s)", graph.name, len(graph.nodes))
        query = parse_query(text)

        if args.render:
            print(render_query(query, RenderMode.PRETTY if args.pretty else RenderMode.INLINE))
            print()

        if args.analyze:
            report = analyze_query(query)
            print(f"CASE expressions: {report.total_case_expressions} "
                  f"(simple {report.simple_forms}, generic {report.generic_forms})")
            for warning in report.warnings:
                print(f"warning: {warning}")
            print()

        result = execute(query, graph, parameters)
    except (CypherCaseError, OSError, ValueError, yaml.YAMLError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(format_result(result, args.format))
    return 0


if __name__ == "__main__":
    sys.exit(main())
