"""
Query structure objects.

A query is an ordered pipeline of clauses:

    MATCH (n:Person) [WHERE ...]
    WITH n, CASE ... END AS colorCode
    SET n.colorCode = colorCode
    RETURN n.name, n.colorCode ORDER BY n.name

Each clause is plain data. Execution lives in cypher_case.executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from cypher_case.expressions import Expression


class Direction(Enum):
    """Direction of a relationship pattern relative to the left node."""
    OUTGOING = "->"
    INCOMING = "<-"
    BOTH = "--"


@dataclass(frozen=True)
class NodePattern:
    """
    ``(n:Person {name: 'Alice'})``

    Properties:
        variable: Bound name, or None for an anonymous node
        labels: Required labels (all must be present)
        properties: Inline property constraints (equality)
    """

    variable: Optional[str] = None
    labels: Tuple[str, ...] = ()
    properties: Tuple[Tuple[str, Expression], ...] = ()


@dataclass(frozen=True)
class RelationshipPattern:
    """``-[r:KNOWS|MARRIED]->``; an empty ``types`` tuple matches any type."""

    variable: Optional[str] = None
    types: Tuple[str, ...] = ()
    direction: Direction = Direction.OUTGOING


@dataclass(frozen=True)
class Pattern:
    """
    A path pattern.

    ``nodes`` always has exactly one more element than ``relationships``.
    Hops have a fixed length; variable-length paths are not supported.
    """

    nodes: Tuple[NodePattern, ...]
    relationships: Tuple[RelationshipPattern, ...] = ()


@dataclass(frozen=True)
class ProjectionItem:
    """
    One projected column: ``expression [AS alias]``.

    ``column_name`` is filled in by the parser: the alias when present,
    otherwise the expression text as written in the query.
    """

    expression: Expression
    alias: Optional[str] = None
    column_name: str = ""


@dataclass(frozen=True)
class SortItem:
    expression: Expression
    descending: bool = False


@dataclass(frozen=True)
class Projection:
    """Body shared by WITH and RETURN."""

    items: Tuple[ProjectionItem, ...]
    distinct: bool = False
    order_by: Tuple[SortItem, ...] = ()
    skip: Optional[Expression] = None
    limit: Optional[Expression] = None


class Clause:
    """Marker base class for query clauses."""
    pass


@dataclass(frozen=True)
class MatchClause(Clause):
    pattern: Pattern
    where: Optional[Expression] = None


@dataclass(frozen=True)
class WithClause(Clause):
    projection: Projection
    where: Optional[Expression] = None


@dataclass(frozen=True)
class SetItem:
    """``SET variable.key = value``"""

    variable: str
    key: str
    value: Expression


@dataclass(frozen=True)
class SetClause(Clause):
    items: Tuple[SetItem, ...]


@dataclass(frozen=True)
class ReturnClause(Clause):
    projection: Projection


@dataclass
class Query:
    """
    Root container for a parsed query.

    INVARIANTS (enforced by the parser):
        - The first clause is a MatchClause
        - The last clause is a ReturnClause
    """

    clauses: List[Clause] = field(default_factory=list)

    @property
    def return_clause(self) -> Optional[ReturnClause]:
        if self.clauses and isinstance(self.clauses[-1], ReturnClause):
            return self.clauses[-1]
        return None

    def projection_expressions(self) -> Dict[str, Expression]:
        """Map of column name to expression for every WITH/RETURN item."""
        found: Dict[str, Expression] = {}
        for clause in self.clauses:
            if isinstance(clause, (WithClause, ReturnClause)):
                for item in clause.projection.items:
                    found[item.column_name] = item.expression
        return found
