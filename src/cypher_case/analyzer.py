"""
CASE Analyzer: read-only diagnostics for CASE expressions.

This module inspects expressions and queries and reports:
    - How many CASE expressions appear, in which form
    - Nesting depth and expression size
    - Referenced variables and properties
    - Warning flags for alternatives that can never be taken and for
      null-handling pitfalls

IMPORTANT: The analyzer never evaluates against data and never modifies
the AST. Warnings are advisory; every flagged query still runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from cypher_case.backends.cypher_renderer import render_expression
from cypher_case.evaluator import equals
from cypher_case.expressions import (
    BinaryExpression,
    CaseExpression,
    Expression,
    FunctionCall,
    ListLiteral,
    Literal,
    PropertyAccess,
    UnaryExpression,
    VariableReference,
    iter_subexpressions,
)
from cypher_case.query import MatchClause, Query, ReturnClause, SetClause, WithClause


@dataclass
class ExpressionMetrics:
    """Metrics about a single expression tree."""
    depth: int = 0
    node_count: int = 0
    case_depth: int = 0
    variable_references: Set[str] = field(default_factory=set)
    property_references: Set[str] = field(default_factory=set)

    def add(self, other: ExpressionMetrics) -> None:
        self.depth = max(self.depth, other.depth)
        self.case_depth = max(self.case_depth, other.case_depth)
        self.node_count += other.node_count
        self.variable_references.update(other.variable_references)
        self.property_references.update(other.property_references)


def _children(expr: Expression) -> List[Expression]:
    if isinstance(expr, BinaryExpression):
        return [expr.left, expr.right]
    if isinstance(expr, UnaryExpression):
        return [expr.operand]
    if isinstance(expr, PropertyAccess):
        return [expr.subject]
    if isinstance(expr, ListLiteral):
        return list(expr.items)
    if isinstance(expr, FunctionCall):
        return list(expr.arguments)
    if isinstance(expr, CaseExpression):
        children = [expr.test] if expr.test is not None else []
        for alt in expr.alternatives:
            children.extend([alt.when, alt.then])
        if expr.default is not None:
            children.append(expr.default)
        return children
    return []


def _analyze_expression(expr: Expression | None) -> ExpressionMetrics:
    """Recursively analyze an expression tree."""
    if expr is None:
        return ExpressionMetrics()

    metrics = ExpressionMetrics(node_count=1)
    children = _children(expr)
    for child in children:
        metrics.add(_analyze_expression(child))

    if children:
        metrics.depth += 1
    if isinstance(expr, CaseExpression):
        metrics.case_depth += 1

    if isinstance(expr, VariableReference):
        metrics.variable_references.add(expr.name)
    elif isinstance(expr, PropertyAccess) and isinstance(expr.subject, VariableReference):
        metrics.property_references.add(f"{expr.subject.name}.{expr.key}")

    return metrics


def _literal_kind(expr: Expression) -> Optional[str]:
    if not isinstance(expr, Literal) or expr.value is None:
        return None
    value = expr.value
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, (int, float)):
        return "Number"
    return "String"


@dataclass
class CaseReport:
    """Analysis report for the CASE expressions in an expression or query."""

    total_case_expressions: int = 0
    simple_forms: int = 0
    generic_forms: int = 0
    without_else: int = 0
    max_case_nesting: int = 0

    # Expression complexity
    max_expression_depth: int = 0
    total_expression_nodes: int = 0

    # References
    variable_references: Set[str] = field(default_factory=set)
    property_references: Set[str] = field(default_factory=set)

    # Per-CASE alternative counts, in encounter order
    alternatives_per_case: List[int] = field(default_factory=list)

    # Warnings and flags
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def _check_simple_alternatives(case: CaseExpression, label: str, report: CaseReport) -> None:
    """Flag WHEN null and WHEN values equal to an earlier one under `=`."""
    seen_values: List[Tuple[int, Any]] = []
    seen_text: Dict[str, int] = {}
    for index, alt in enumerate(case.alternatives, start=1):
        if isinstance(alt.when, Literal):
            if alt.when.value is None:
                report.add_warning(
                    f"WHEN null in simple {label} never matches (null = null is null); "
                    f"use the generic form with IS NULL"
                )
                continue
            earlier = next((i for i, v in seen_values if equals(v, alt.when.value)), None)
            if earlier is None:
                seen_values.append((index, alt.when.value))
        else:
            key = render_expression(alt.when)
            earlier = seen_text.get(key)
            if earlier is None:
                seen_text[key] = index
        if earlier is not None:
            report.add_warning(
                f"Alternative {index} of {label} repeats WHEN {render_expression(alt.when)} "
                f"from alternative {earlier} and is unreachable"
            )


def _check_generic_alternatives(case: CaseExpression, label: str, report: CaseReport) -> None:
    for index, alt in enumerate(case.alternatives, start=1):
        if not isinstance(alt.when, Literal):
            continue
        if alt.when.value is True:
            if index < len(case.alternatives):
                report.add_warning(
                    f"Alternatives after {index} of {label} are unreachable: WHEN true always matches"
                )
            if case.default is not None:
                report.add_warning(f"ELSE of {label} is unreachable: WHEN true always matches")
            return
        if alt.when.value is False or alt.when.value is None:
            report.add_warning(
                f"Alternative {index} of {label} is never taken: its predicate is always "
                f"{'false' if alt.when.value is False else 'null'}"
            )


def _check_case(case: CaseExpression, report: CaseReport) -> None:
    label = render_expression(case)
    if len(label) > 60:
        label = label[:57] + "..."

    report.total_case_expressions += 1
    report.alternatives_per_case.append(len(case.alternatives))
    if case.is_simple:
        report.simple_forms += 1
    else:
        report.generic_forms += 1

    if case.default is None:
        report.without_else += 1
        report.add_warning(f"No ELSE in {label}: rows matching no WHEN yield null")

    if case.is_simple:
        _check_simple_alternatives(case, label, report)
    else:
        _check_generic_alternatives(case, label, report)

    results = [alt.then for alt in case.alternatives]
    if case.default is not None:
        results.append(case.default)
    kinds = sorted({k for k in (_literal_kind(r) for r in results) if k is not None})
    if len(kinds) > 1:
        report.add_warning(f"{label} returns mixed types: {', '.join(kinds)}")


def _collect(expr: Expression | None, report: CaseReport) -> None:
    if expr is None:
        return
    metrics = _analyze_expression(expr)
    report.max_expression_depth = max(report.max_expression_depth, metrics.depth)
    report.max_case_nesting = max(report.max_case_nesting, metrics.case_depth)
    report.total_expression_nodes += metrics.node_count
    report.variable_references.update(metrics.variable_references)
    report.property_references.update(metrics.property_references)
    for node in iter_subexpressions(expr):
        if isinstance(node, CaseExpression):
            _check_case(node, report)


def analyze_expression(expr: Expression) -> CaseReport:
    """
    Analyze a single expression and every CASE nested inside it.

    Returns a CaseReport with metrics and warnings.
    """
    report = CaseReport()
    _collect(expr, report)
    return report


def _query_expressions(query: Query) -> List[Expression]:
    found: List[Expression] = []
    for clause in query.clauses:
        if isinstance(clause, MatchClause):
            for node in clause.pattern.nodes:
                found.extend(v for _, v in node.properties)
            if clause.where is not None:
                found.append(clause.where)
        elif isinstance(clause, (WithClause, ReturnClause)):
            projection = clause.projection
            found.extend(item.expression for item in projection.items)
            found.extend(sort.expression for sort in projection.order_by)
            found.extend(e for e in (projection.skip, projection.limit) if e is not None)
            if isinstance(clause, WithClause) and clause.where is not None:
                found.append(clause.where)
        elif isinstance(clause, SetClause):
            found.extend(item.value for item in clause.items)
    return found


def analyze_query(query: Query) -> CaseReport:
    """
    Analyze every expression in a query.

    Checks for:
    - CASE form usage and nesting
    - Unreachable or never-taken alternatives
    - WHEN null in the simple form
    - Missing ELSE and mixed result types

    Returns a CaseReport with metrics and warnings.
    """
    report = CaseReport()
    for expr in _query_expressions(query):
        _collect(expr, report)

    if report.max_case_nesting > 3:
        report.add_warning(f"Deeply nested CASE: nesting depth {report.max_case_nesting}")
    return report
