"""
Query text renderer.

Converts expression and query ASTs back into query text.

Supports two modes:
    - INLINE: Everything on one line per clause
    - PRETTY: CASE alternatives laid out one per line, as in the
      reference documentation

Rendered text re-parses to the same expression AST. Parentheses are
emitted only where operator precedence requires them.
"""

import math
import re
from enum import Enum
from typing import List

from cypher_case.expressions import (
    BinaryExpression,
    BinaryOperator,
    CaseExpression,
    Expression,
    FunctionCall,
    ListLiteral,
    Literal,
    Parameter,
    PropertyAccess,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
)
from cypher_case.parser import RESERVED_WORDS
from cypher_case.query import (
    Direction,
    MatchClause,
    NodePattern,
    Pattern,
    Projection,
    Query,
    RelationshipPattern,
    ReturnClause,
    SetClause,
    WithClause,
)


class RenderMode(Enum):
    """Layout modes for rendered query text."""
    INLINE = "inline"  # Single line per clause
    PRETTY = "pretty"  # CASE alternatives on their own lines


INDENT = "  "

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Binding strength, weakest first
_PREC_OR = 1
_PREC_XOR = 2
_PREC_AND = 3
_PREC_NOT = 4
_PREC_COMPARISON = 5
_PREC_PREDICATE = 6
_PREC_ADDITIVE = 7
_PREC_MULTIPLICATIVE = 8
_PREC_POWER = 9
_PREC_UNARY = 10
_PREC_POSTFIX = 11
_PREC_ATOM = 12

_BINARY_PRECEDENCE = {
    BinaryOperator.OR: _PREC_OR,
    BinaryOperator.XOR: _PREC_XOR,
    BinaryOperator.AND: _PREC_AND,
    BinaryOperator.EQUALS: _PREC_COMPARISON,
    BinaryOperator.NOT_EQUALS: _PREC_COMPARISON,
    BinaryOperator.LESS_THAN: _PREC_COMPARISON,
    BinaryOperator.LESS_EQUAL: _PREC_COMPARISON,
    BinaryOperator.GREATER_THAN: _PREC_COMPARISON,
    BinaryOperator.GREATER_EQUAL: _PREC_COMPARISON,
    BinaryOperator.IN: _PREC_PREDICATE,
    BinaryOperator.ADD: _PREC_ADDITIVE,
    BinaryOperator.SUBTRACT: _PREC_ADDITIVE,
    BinaryOperator.MULTIPLY: _PREC_MULTIPLICATIVE,
    BinaryOperator.DIVIDE: _PREC_MULTIPLICATIVE,
    BinaryOperator.MODULO: _PREC_MULTIPLICATIVE,
    BinaryOperator.POWER: _PREC_POWER,
}


def quote_string(value: str) -> str:
    """Render a string literal in single quotes with escapes."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )
    return f"'{escaped}'"


def escape_name(name: str) -> str:
    """Backtick-quote names that are not plain identifiers or are reserved."""
    if _IDENTIFIER_RE.match(name) and name.upper() not in RESERVED_WORDS:
        return name
    return f"`{name}`"


def _escape_key(key: str) -> str:
    # Property keys and labels may be reserved words
    return key if _IDENTIFIER_RE.match(key) else f"`{key}`"


def _render_literal(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return quote_string(value)
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            raise ValueError("NaN has no literal form in query text")
        # Overflows to infinity when parsed
        return "1e999" if value > 0 else "-1e999"
    return repr(value)


def _precedence(expr: Expression) -> int:
    if isinstance(expr, BinaryExpression):
        return _BINARY_PRECEDENCE[expr.operator]
    if isinstance(expr, UnaryExpression):
        if expr.operator is UnaryOperator.NOT:
            return _PREC_NOT
        if expr.operator is UnaryOperator.NEGATE:
            return _PREC_UNARY
        return _PREC_PREDICATE
    if isinstance(expr, Literal) and isinstance(expr.value, (int, float)) \
            and not isinstance(expr.value, bool) and expr.value < 0:
        return _PREC_UNARY
    if isinstance(expr, PropertyAccess):
        return _PREC_POSTFIX
    return _PREC_ATOM


def _render(expr: Expression, mode: RenderMode, depth: int, min_prec: int) -> str:
    text = _render_bare(expr, mode, depth)
    if _precedence(expr) < min_prec:
        return f"({text})"
    return text


def _render_bare(expr: Expression, mode: RenderMode, depth: int) -> str:
    if isinstance(expr, Literal):
        return _render_literal(expr.value)

    if isinstance(expr, VariableReference):
        return escape_name(expr.name)

    if isinstance(expr, Parameter):
        return f"${expr.name}"

    if isinstance(expr, PropertyAccess):
        return f"{_render(expr.subject, mode, depth, _PREC_POSTFIX)}.{_escape_key(expr.key)}"

    if isinstance(expr, ListLiteral):
        return "[" + ", ".join(_render(i, mode, depth, _PREC_OR) for i in expr.items) + "]"

    if isinstance(expr, FunctionCall):
        args = ", ".join(_render(a, mode, depth, _PREC_OR) for a in expr.arguments)
        return f"{expr.name}({args})"

    if isinstance(expr, UnaryExpression):
        op = expr.operator
        if op is UnaryOperator.NOT:
            return f"NOT {_render(expr.operand, mode, depth, _PREC_NOT)}"
        if op is UnaryOperator.NEGATE:
            operand = _render(expr.operand, mode, depth, _PREC_UNARY)
            # Avoid "--x", which would read as a pattern arrow
            if operand.startswith("-"):
                operand = f"({operand})"
            return f"-{operand}"
        return f"{_render(expr.operand, mode, depth, _PREC_PREDICATE)} {op.value}"

    if isinstance(expr, BinaryExpression):
        prec = _BINARY_PRECEDENCE[expr.operator]
        if prec == _PREC_COMPARISON:
            left_min, right_min = prec + 1, prec + 1
        elif expr.operator is BinaryOperator.IN:
            left_min, right_min = prec, _PREC_ADDITIVE
        else:
            left_min, right_min = prec, prec + 1
        left = _render(expr.left, mode, depth, left_min)
        right = _render(expr.right, mode, depth, right_min)
        return f"{left} {expr.operator.value} {right}"

    if isinstance(expr, CaseExpression):
        return _render_case(expr, mode, depth)

    raise TypeError(f"Unsupported Expression type: {type(expr)}")


def _render_case(expr: CaseExpression, mode: RenderMode, depth: int) -> str:
    parts: List[str] = []
    head = "CASE"
    if expr.test is not None:
        head = f"CASE {_render(expr.test, mode, depth + 1, _PREC_OR)}"
    for alt in expr.alternatives:
        when = _render(alt.when, mode, depth + 1, _PREC_OR)
        then = _render(alt.then, mode, depth + 1, _PREC_OR)
        parts.append(f"WHEN {when} THEN {then}")
    if expr.default is not None:
        parts.append(f"ELSE {_render(expr.default, mode, depth + 1, _PREC_OR)}")

    if mode is RenderMode.INLINE:
        return " ".join([head] + parts + ["END"])

    inner = "\n" + INDENT * (depth + 1)
    return head + "".join(inner + p for p in parts) + "\n" + INDENT * depth + "END"


def render_expression(expr: Expression, mode: RenderMode = RenderMode.INLINE) -> str:
    """
    Render an expression as query text.

    Args:
        expr: Expression to render
        mode: INLINE (default) or PRETTY

    Returns:
        Query text that parses back to ``expr``
    """
    return _render(expr, mode, 0, _PREC_OR)


# =============================================================================
# QUERIES
# =============================================================================

def _render_properties(properties, mode: RenderMode) -> str:
    if not properties:
        return ""
    entries = ", ".join(f"{_escape_key(k)}: {render_expression(v, mode)}" for k, v in properties)
    return f" {{{entries}}}"


def _render_node(node: NodePattern, mode: RenderMode) -> str:
    text = escape_name(node.variable) if node.variable else ""
    text += "".join(f":{_escape_key(label)}" for label in node.labels)
    props = _render_properties(node.properties, mode)
    if props and not text:
        props = props.lstrip()
    return f"({text}{props})"


def _render_relationship(rel: RelationshipPattern) -> str:
    body = escape_name(rel.variable) if rel.variable else ""
    if rel.types:
        body += ":" + "|".join(_escape_key(t) for t in rel.types)
    middle = f"[{body}]" if body else ""
    if rel.direction is Direction.OUTGOING:
        return f"-{middle}->"
    if rel.direction is Direction.INCOMING:
        return f"<-{middle}-"
    return f"-{middle}-"


def render_pattern(pattern: Pattern, mode: RenderMode = RenderMode.INLINE) -> str:
    text = _render_node(pattern.nodes[0], mode)
    for rel, node in zip(pattern.relationships, pattern.nodes[1:]):
        text += _render_relationship(rel) + _render_node(node, mode)
    return text


def _render_projection(projection: Projection, mode: RenderMode) -> str:
    items = []
    for item in projection.items:
        text = render_expression(item.expression, mode)
        if item.alias is not None:
            text += f" AS {escape_name(item.alias)}"
        items.append(text)
    text = ("DISTINCT " if projection.distinct else "") + ", ".join(items)
    if projection.order_by:
        sorts = []
        for sort in projection.order_by:
            sorts.append(render_expression(sort.expression, mode) + (" DESC" if sort.descending else ""))
        text += " ORDER BY " + ", ".join(sorts)
    if projection.skip is not None:
        text += f" SKIP {render_expression(projection.skip, mode)}"
    if projection.limit is not None:
        text += f" LIMIT {render_expression(projection.limit, mode)}"
    return text


def render_query(query: Query, mode: RenderMode = RenderMode.INLINE) -> str:
    """
    Render a query, one clause per line.

    Args:
        query: Query to render
        mode: INLINE (default) or PRETTY

    Returns:
        Query text
    """
    lines = []
    for clause in query.clauses:
        if isinstance(clause, MatchClause):
            line = f"MATCH {render_pattern(clause.pattern, mode)}"
            if clause.where is not None:
                line += f" WHERE {render_expression(clause.where, mode)}"
        elif isinstance(clause, WithClause):
            line = f"WITH {_render_projection(clause.projection, mode)}"
            if clause.where is not None:
                line += f" WHERE {render_expression(clause.where, mode)}"
        elif isinstance(clause, SetClause):
            assignments = [
                f"{escape_name(item.variable)}.{_escape_key(item.key)} = {render_expression(item.value, mode)}"
                for item in clause.items
            ]
            line = "SET " + ", ".join(assignments)
        elif isinstance(clause, ReturnClause):
            line = f"RETURN {_render_projection(clause.projection, mode)}"
        else:
            raise TypeError(f"Unsupported clause type: {type(clause)}")
        lines.append(line)
    return "\n".join(lines)


def save_query_file(query: Query, filename: str, mode: RenderMode = RenderMode.PRETTY) -> None:
    """
    Render a query and save it to a file.

    Args:
        query: Query to render
        filename: Output file path (.cypher extension recommended)
        mode: Layout mode
    """
    text = render_query(query, mode=mode)
    with open(filename, "w", encoding="utf-8") as f:
        f.write(text + "\n")


__all__ = [
    "RenderMode",
    "render_expression",
    "render_pattern",
    "render_query",
    "save_query_file",
    "quote_string",
    "escape_name",
]
