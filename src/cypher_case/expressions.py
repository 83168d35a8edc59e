"""
Expression System for cypher-case

Every scalar expression in a query (projections, predicates, SET values,
CASE alternatives) is represented as an Abstract Syntax Tree, never as a
string.

This ensures:
    - Evaluation is independent of surface syntax
    - Expressions can be rendered back to query text
    - Serialization capability
    - Composability for analysis

ARCHITECTURAL RULE:
    Node classes are structure only.
    Evaluation lives in cypher_case.evaluator.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple, Union


class Expression(ABC):
    """
    Base class for all AST expressions.

    DO NOT:
        - Add evaluation logic here (belongs in the evaluator)
        - Add string representations (belongs in backends)
        - Add simplification logic (belongs in the analyzer)
    """
    pass


class BinaryOperator(Enum):
    """
    Binary operators supported in expressions.

    Values are the operator spelling used by the query language.
    """

    # Logical operators
    AND = "AND"
    OR = "OR"
    XOR = "XOR"

    # Comparison operators
    EQUALS = "="
    NOT_EQUALS = "<>"
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    LESS_EQUAL = "<="

    # Arithmetic / string operators
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"
    POWER = "^"

    # List membership
    IN = "IN"


LOGICAL_OPERATORS = frozenset({BinaryOperator.AND, BinaryOperator.OR, BinaryOperator.XOR})

COMPARISON_OPERATORS = frozenset({
    BinaryOperator.EQUALS,
    BinaryOperator.NOT_EQUALS,
    BinaryOperator.GREATER_THAN,
    BinaryOperator.GREATER_EQUAL,
    BinaryOperator.LESS_THAN,
    BinaryOperator.LESS_EQUAL,
})

ARITHMETIC_OPERATORS = frozenset({
    BinaryOperator.ADD,
    BinaryOperator.SUBTRACT,
    BinaryOperator.MULTIPLY,
    BinaryOperator.DIVIDE,
    BinaryOperator.MODULO,
    BinaryOperator.POWER,
})


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Represents a binary logical, comparison, arithmetic or membership
    expression.

    Example:
        n.eyes = 'blue'

    Becomes:
        BinaryExpression(
            operator=BinaryOperator.EQUALS,
            left=PropertyAccess(VariableReference("n"), "eyes"),
            right=Literal("blue"),
        )
    """

    operator: BinaryOperator
    left: Expression
    right: Expression


class UnaryOperator(Enum):
    """Prefix and postfix unary operators."""
    NOT = "NOT"
    NEGATE = "-"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """
    Represents a unary operation.

    Example:
        n.age IS NULL

    Becomes:
        UnaryExpression(
            operator=UnaryOperator.IS_NULL,
            operand=PropertyAccess(VariableReference("n"), "age"),
        )
    """

    operator: UnaryOperator
    operand: Expression


@dataclass(frozen=True)
class VariableReference(Expression):
    """
    References a variable bound in the current row.

    Examples:
        - n            (bound by MATCH)
        - colorCode    (bound by WITH ... AS colorCode)

    This object does NOT check that the variable is bound.
    """

    name: str


@dataclass(frozen=True)
class Literal(Expression):
    """
    Represents a literal constant value.

    Examples:
        - 1
        - 3.5
        - 'blue'
        - true
        - null  (value is None)
    """

    value: Union[int, float, str, bool, None]


@dataclass(frozen=True)
class Parameter(Expression):
    """A query parameter such as ``$threshold``."""

    name: str


@dataclass(frozen=True)
class PropertyAccess(Expression):
    """
    Reads a property from a node, relationship or map-like value.

    Example:
        n.age  ->  PropertyAccess(VariableReference("n"), "age")
    """

    subject: Expression
    key: str


@dataclass(frozen=True)
class ListLiteral(Expression):
    """A list of expressions, e.g. ``['blue', 'green']``."""

    items: Tuple[Expression, ...] = ()


@dataclass(frozen=True)
class FunctionCall(Expression):
    """
    Calls a scalar function by name.

    Examples:
        - coalesce(n.age, 0)
        - toUpper(n.name)
    """

    name: str
    arguments: Tuple[Expression, ...] = ()


@dataclass(frozen=True)
class CaseAlternative:
    """
    One ``WHEN ... THEN ...`` clause.

    In the simple form ``when`` is a candidate value compared to the test
    expression; in the generic form it is a predicate.
    """

    when: Expression
    then: Expression


@dataclass(frozen=True)
class CaseExpression(Expression):
    """
    The CASE conditional expression.

    Simple form (``test`` is set):
        CASE n.eyes WHEN 'blue' THEN 1 WHEN 'brown' THEN 2 ELSE 3 END

    Generic form (``test`` is None):
        CASE WHEN n.eyes = 'blue' THEN 1 WHEN n.age < 40 THEN 2 ELSE 3 END

    Properties:
        alternatives: WHEN/THEN pairs in declaration order (at least one)
        test: The expression compared against each WHEN value (simple form)
        default: The ELSE expression, or None when there is no ELSE

    IMPORTANT:
        ``default=None`` means "no ELSE clause", which is different from
        ``ELSE null`` (``default=Literal(None)``). Both evaluate to null when
        nothing matches, but they render differently.
    """

    alternatives: Tuple[CaseAlternative, ...]
    test: Optional[Expression] = None
    default: Optional[Expression] = None

    @property
    def is_simple(self) -> bool:
        return self.test is not None


def iter_subexpressions(expr: Optional[Expression]) -> Iterator[Expression]:
    """Walk an expression tree in pre-order, yielding every node."""
    if expr is None:
        return
    yield expr
    if isinstance(expr, BinaryExpression):
        yield from iter_subexpressions(expr.left)
        yield from iter_subexpressions(expr.right)
    elif isinstance(expr, UnaryExpression):
        yield from iter_subexpressions(expr.operand)
    elif isinstance(expr, PropertyAccess):
        yield from iter_subexpressions(expr.subject)
    elif isinstance(expr, ListLiteral):
        for item in expr.items:
            yield from iter_subexpressions(item)
    elif isinstance(expr, FunctionCall):
        for arg in expr.arguments:
            yield from iter_subexpressions(arg)
    elif isinstance(expr, CaseExpression):
        yield from iter_subexpressions(expr.test)
        for alt in expr.alternatives:
            yield from iter_subexpressions(alt.when)
            yield from iter_subexpressions(alt.then)
        yield from iter_subexpressions(expr.default)
