"""
ASCII table renderer for query results.

Produces the boxed tables used throughout the reference documentation:

    +-------------------+
    | n.name   | result |
    +-------------------+
    | "Alice"  | 2      |
    | "Daniel" | <null> |
    +-------------------+
    2 rows
"""

import math
from typing import Any, List

from cypher_case.executor import QueryResult
from cypher_case.model import Node, Relationship

NULL_MARKER = "<null>"


def _format_map(properties: dict) -> str:
    entries = ",".join(f"{k}:{format_value(v)}" for k, v in properties.items())
    return "{" + entries + "}"


def format_value(value: Any) -> str:
    """Format a single cell value."""
    if value is None:
        return NULL_MARKER
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return "[" + ",".join(format_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return _format_map(value)
    if isinstance(value, Node):
        return f"Node[{value.id}]{_format_map(value.properties)}"
    if isinstance(value, Relationship):
        return f":{value.type}[{value.id}]{_format_map(value.properties)}"
    return str(value)


def render_table(result: QueryResult) -> str:
    """
    Render a QueryResult as a boxed table with a row count footer.

    A ``Properties set`` line follows when the query assigned properties.
    """
    header = list(result.columns)
    body: List[List[str]] = [[format_value(v) for v in row] for row in result.rows]

    widths = [len(h) for h in header]
    for cells in body:
        for index, cell in enumerate(cells):
            widths[index] = max(widths[index], len(cell))

    inner = sum(widths) + 3 * (len(widths) - 1) + 2 if widths else 2
    rule = "+" + "-" * inner + "+"

    def line(cells: List[str]) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    lines = [rule, line(header), rule]
    lines.extend(line(cells) for cells in body)
    lines.append(rule)

    count = len(result.rows)
    lines.append(f"{count} row" if count == 1 else f"{count} rows")
    properties_set = result.stats.get("properties_set", 0)
    if properties_set:
        lines.append(f"Properties set: {properties_set}")
    return "\n".join(lines)


__all__ = ["render_table", "format_value", "NULL_MARKER"]
