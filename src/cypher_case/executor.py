"""
Query Executor: runs a parsed Query against a Graph.

Rows flow through the clause pipeline as dicts of variable name -> value:

    MATCH   extends each row with every way the pattern matches
    WHERE   keeps rows whose predicate is strictly true
    WITH    replaces each row with its projected columns
    SET     assigns properties on bound nodes/relationships
    RETURN  projects the final table

Row order is deterministic: MATCH enumerates nodes and relationships in
graph insertion order, and every later clause preserves order unless
ORDER BY says otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from cypher_case.errors import EvaluationError, EvaluationTypeError
from cypher_case.evaluator import Evaluator, equals, is_number, type_name
from cypher_case.expressions import Expression
from cypher_case.model import Graph, Node, Relationship
from cypher_case.parser import parse_query
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


logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass
class QueryResult:
    """
    Tabular result of a query.

    Properties:
        columns: Column names in projection order
        rows: One tuple per result row, aligned with ``columns``
        stats: Counters such as ``properties_set``
    """

    columns: List[str]
    rows: List[Tuple[Any, ...]] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.rows)

    def records(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]

    def column(self, name: str) -> List[Any]:
        """
        All values of one column, in row order.

        Raises:
            KeyError: If the column does not exist
        """
        if name not in self.columns:
            raise KeyError(f"No column named {name!r}; columns are {self.columns}")
        index = self.columns.index(name)
        return [row[index] for row in self.rows]

    def value(self) -> Any:
        """The single value of a one-row, one-column result."""
        if len(self.rows) != 1 or len(self.columns) != 1:
            raise ValueError(f"Expected a single value, got {len(self.rows)} row(s) x {len(self.columns)} column(s)")
        return self.rows[0][0]


# =============================================================================
# ORDERING
# =============================================================================

def _order_rank(value: Any) -> int:
    # Ascending global order: maps, nodes, relationships, lists, strings,
    # booleans, numbers, null.
    if isinstance(value, dict):
        return 0
    if isinstance(value, Node):
        return 1
    if isinstance(value, Relationship):
        return 2
    if isinstance(value, list):
        return 3
    if isinstance(value, str):
        return 4
    if isinstance(value, bool):
        return 5
    if is_number(value):
        return 6
    return 7


def order_compare(left: Any, right: Any) -> int:
    """Total order used by ORDER BY (ascending); null sorts last."""
    rank_left, rank_right = _order_rank(left), _order_rank(right)
    if rank_left != rank_right:
        return -1 if rank_left < rank_right else 1

    if left is None:
        return 0
    if isinstance(left, (Node, Relationship)):
        left, right = left.id, right.id
    elif isinstance(left, list):
        for a, b in zip(left, right):
            outcome = order_compare(a, b)
            if outcome:
                return outcome
        left, right = len(left), len(right)
    elif isinstance(left, dict):
        left = sorted(left.items(), key=lambda kv: kv[0])
        right = sorted(right.items(), key=lambda kv: kv[0])
        return order_compare([[k, v] for k, v in left], [[k, v] for k, v in right])
    elif is_number(left):
        # NaN sorts after every other number
        left_nan, right_nan = left != left, right != right
        if left_nan or right_nan:
            return (left_nan > right_nan) - (left_nan < right_nan)

    return (left > right) - (left < right)


def _distinct_key(value: Any) -> Any:
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if is_number(value):
        return ("number", value)
    if isinstance(value, str):
        return ("string", value)
    if isinstance(value, list):
        return ("list", tuple(_distinct_key(v) for v in value))
    if isinstance(value, dict):
        return ("map", tuple(sorted((k, _distinct_key(v)) for k, v in value.items())))
    if isinstance(value, Node):
        return ("node", value.id)
    if isinstance(value, Relationship):
        return ("relationship", value.id)
    return ("other", repr(value))


# =============================================================================
# EXECUTOR
# =============================================================================

class QueryExecutor:
    """
    Executes queries against one graph.

    SET clauses mutate the graph in place.

    Args:
        graph: The graph to read and update
        parameters: Values for ``$name`` parameters (optional)
    """

    def __init__(self, graph: Graph, parameters: Optional[Mapping[str, Any]] = None):
        self.graph = graph
        self.evaluator = Evaluator(parameters)

    def execute(self, query: Query) -> QueryResult:
        if query.return_clause is None:
            raise EvaluationError("Query has no RETURN clause")

        stats = {"properties_set": 0}
        rows: List[Row] = [{}]

        for clause in query.clauses:
            if isinstance(clause, MatchClause):
                rows = self._match(clause, rows)
                logger.debug("MATCH produced %d row(s)", len(rows))
            elif isinstance(clause, WithClause):
                projected = self._project(clause.projection, rows)
                rows = [dict(zip(columns, values)) for columns, values in projected]
                if clause.where is not None:
                    rows = [r for r in rows if self.evaluator.evaluate_predicate(clause.where, r)]
                logger.debug("WITH produced %d row(s)", len(rows))
            elif isinstance(clause, SetClause):
                stats["properties_set"] += self._set(clause, rows)
            elif isinstance(clause, ReturnClause):
                projected = self._project(clause.projection, rows)
                columns = [item.column_name for item in clause.projection.items]
                result = QueryResult(columns=columns, rows=[values for _, values in projected], stats=stats)
                stats["rows"] = len(result.rows)
                logger.debug("RETURN produced %d row(s)", len(result.rows))
                return result
            else:
                raise TypeError(f"Unsupported clause type: {type(clause)}")

        raise EvaluationError("Query has no RETURN clause")

    # -------------------------------------------------------------------------
    # MATCH
    # -------------------------------------------------------------------------

    def _match(self, clause: MatchClause, rows: List[Row]) -> List[Row]:
        matched: List[Row] = []
        for row in rows:
            for candidate in self._match_pattern(clause.pattern, row):
                if clause.where is None or self.evaluator.evaluate_predicate(clause.where, candidate):
                    matched.append(candidate)
        return matched

    def _match_pattern(self, pattern: Pattern, row: Row) -> Iterator[Row]:
        first = pattern.nodes[0]
        for node in self._node_candidates(first, row):
            bound = self._bind(row, first.variable, node)
            if bound is None:
                continue
            yield from self._extend_path(pattern, 0, node, bound, set())

    def _extend_path(self, pattern: Pattern, hop: int, current: Node, row: Row, used: set) -> Iterator[Row]:
        if hop == len(pattern.relationships):
            yield row
            return

        rel_pattern = pattern.relationships[hop]
        node_pattern = pattern.nodes[hop + 1]
        for rel, other_id in self._expand(rel_pattern, current):
            if rel.id in used:
                continue
            if rel_pattern.types and rel.type not in rel_pattern.types:
                continue
            other = self.graph.get_node(other_id)
            if other is None or not self._node_matches(node_pattern, other, row):
                continue
            bound = self._bind(row, rel_pattern.variable, rel)
            if bound is None:
                continue
            bound = self._bind(bound, node_pattern.variable, other)
            if bound is None:
                continue
            yield from self._extend_path(pattern, hop + 1, other, bound, used | {rel.id})

    def _expand(self, rel_pattern: RelationshipPattern, node: Node) -> Iterator[Tuple[Relationship, int]]:
        if rel_pattern.direction in (Direction.OUTGOING, Direction.BOTH):
            for rel in self.graph.relationships_from(node):
                yield rel, rel.end
        if rel_pattern.direction in (Direction.INCOMING, Direction.BOTH):
            for rel in self.graph.relationships_to(node):
                if rel_pattern.direction is Direction.BOTH and rel.start == rel.end:
                    continue
                yield rel, rel.start

    def _node_candidates(self, node_pattern: NodePattern, row: Row) -> List[Node]:
        if node_pattern.variable is not None and node_pattern.variable in row:
            existing = row[node_pattern.variable]
            if existing is None:
                return []
            if not isinstance(existing, Node):
                raise EvaluationTypeError(
                    f"Variable `{node_pattern.variable}` is a {type_name(existing)}, not a Node"
                )
            return [existing] if self._node_matches(node_pattern, existing, row) else []
        return [n for n in self.graph.nodes if self._node_matches(node_pattern, n, row)]

    def _node_matches(self, node_pattern: NodePattern, node: Node, row: Row) -> bool:
        if not all(node.has_label(label) for label in node_pattern.labels):
            return False
        return self._properties_match(node_pattern.properties, node, row)

    def _properties_match(self, constraints: Tuple[Tuple[str, Expression], ...], entity: Any, row: Row) -> bool:
        for key, expr in constraints:
            if equals(entity.get(key), self.evaluator.evaluate(expr, row)) is not True:
                return False
        return True

    @staticmethod
    def _bind(row: Row, variable: Optional[str], value: Any) -> Optional[Row]:
        """Return ``row`` extended with ``variable``; None on a conflicting binding."""
        if variable is None:
            return row
        if variable in row:
            return row if equals(row[variable], value) is True else None
        extended = dict(row)
        extended[variable] = value
        return extended

    # -------------------------------------------------------------------------
    # WITH / RETURN
    # -------------------------------------------------------------------------

    def _project(self, projection: Projection, rows: List[Row]) -> List[Tuple[List[str], Tuple[Any, ...]]]:
        columns = [item.column_name for item in projection.items]
        projected: List[Tuple[Row, Tuple[Any, ...]]] = []
        for row in rows:
            values = tuple(self.evaluator.evaluate(item.expression, row) for item in projection.items)
            projected.append((row, values))

        if projection.distinct:
            seen = set()
            unique = []
            for row, values in projected:
                key = tuple(_distinct_key(v) for v in values)
                if key not in seen:
                    seen.add(key)
                    unique.append((row, values))
            projected = unique

        if projection.order_by:
            projected = self._sort(projection, columns, projected)

        skip = self._row_count(projection.skip, "SKIP")
        limit = self._row_count(projection.limit, "LIMIT")
        if skip is not None:
            projected = projected[skip:]
        if limit is not None:
            projected = projected[:limit]

        return [(columns, values) for _, values in projected]

    def _sort(self, projection: Projection, columns: List[str],
              projected: List[Tuple[Row, Tuple[Any, ...]]]) -> List[Tuple[Row, Tuple[Any, ...]]]:
        keyed = []
        for row, values in projected:
            scope = dict(row)
            scope.update(zip(columns, values))
            keys = [self.evaluator.evaluate(item.expression, scope) for item in projection.order_by]
            keyed.append((keys, row, values))

        def compare_rows(a, b) -> int:
            for index, item in enumerate(projection.order_by):
                outcome = order_compare(a[0][index], b[0][index])
                if outcome:
                    return -outcome if item.descending else outcome
            return 0

        keyed.sort(key=cmp_to_key(compare_rows))
        return [(row, values) for _, row, values in keyed]

    def _row_count(self, expr: Optional[Expression], clause: str) -> Optional[int]:
        if expr is None:
            return None
        value = self.evaluator.evaluate(expr, {})
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise EvaluationError(f"{clause} expects a non-negative integer, got {value!r}")
        return value

    # -------------------------------------------------------------------------
    # SET
    # -------------------------------------------------------------------------

    def _set(self, clause: SetClause, rows: List[Row]) -> int:
        assigned = 0
        for row in rows:
            for item in clause.items:
                if item.variable not in row:
                    raise EvaluationError(f"Variable `{item.variable}` not defined")
                target = row[item.variable]
                if target is None:
                    continue
                if not isinstance(target, (Node, Relationship)):
                    raise EvaluationTypeError(
                        f"Cannot set a property on {type_name(target)} `{item.variable}`"
                    )
                value = self.evaluator.evaluate(item.value, row)
                _check_storable(value)
                target.set(item.key, value)
                assigned += 1
                logger.debug("SET %s.%s = %r", item.variable, item.key, value)
        return assigned


def _check_storable(value: Any) -> None:
    if value is None or isinstance(value, (bool, str)) or is_number(value):
        return
    if isinstance(value, list) and all(
        v is not None and (isinstance(v, (bool, str)) or is_number(v)) for v in value
    ):
        return
    raise EvaluationTypeError(f"Property values can only be of primitive types or lists thereof, got {type_name(value)}")


def execute(query: Query, graph: Graph, parameters: Optional[Mapping[str, Any]] = None) -> QueryResult:
    """Run a parsed query against ``graph``."""
    return QueryExecutor(graph, parameters).execute(query)


def run_query(text: str, graph: Graph, parameters: Optional[Mapping[str, Any]] = None) -> QueryResult:
    """Parse and run query text against ``graph``."""
    logger.debug("Running query: %s", " ".join(text.split()))
    return execute(parse_query(text), graph, parameters)


__all__ = [
    "QueryExecutor",
    "QueryResult",
    "execute",
    "run_query",
    "order_compare",
]
