"""
Expression Evaluator

Computes the value of an Expression against a single row (a mapping of
variable names to values).

Value domain:
    None (null), bool, int, float, str, list, Node, Relationship

NULL SEMANTICS:
    - null is never equal to anything, including null
    - arithmetic, comparison and scalar functions return null when an
      operand is null (coalesce excepted)
    - boolean operators follow three-valued (Kleene) logic
    - a missing property reads as null

CASE SEMANTICS:
    Simple form:
        The test expression is evaluated once. Each WHEN value is compared
        to it with equality, top to bottom. The first comparison that is
        strictly true selects its THEN expression. Comparisons that yield
        null (any null operand) do not match.

    Generic form:
        Each WHEN predicate is evaluated top to bottom. The first that is
        strictly true selects its THEN expression. false and null fall
        through.

    In both forms only the winning THEN expression is evaluated, later
    alternatives are never evaluated, and with no match the ELSE value is
    returned (null when there is no ELSE).

The evaluator keeps no state between calls: the same expression against
the same row and parameters always yields the same value.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Mapping, Optional

from cypher_case.errors import (
    EvaluationError,
    EvaluationTypeError,
    UnboundParameterError,
    UnboundVariableError,
    UnknownFunctionError,
)
from cypher_case.expressions import (
    ARITHMETIC_OPERATORS,
    COMPARISON_OPERATORS,
    LOGICAL_OPERATORS,
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
from cypher_case.model import Node, Relationship


Row = Mapping[str, Any]


# =============================================================================
# VALUE HELPERS
# =============================================================================

def is_number(value: Any) -> bool:
    """True for int and float, but not bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    """Query-language name of a value's type, for error messages."""
    if value is None:
        return "Null"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, float):
        return "Float"
    if isinstance(value, str):
        return "String"
    if isinstance(value, list):
        return "List"
    if isinstance(value, Node):
        return "Node"
    if isinstance(value, Relationship):
        return "Relationship"
    if isinstance(value, dict):
        return "Map"
    return type(value).__name__


def to_string(value: Any) -> Optional[str]:
    """Convert a scalar to its string form (``toString`` semantics)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    raise EvaluationTypeError(f"Cannot convert {type_name(value)} to String")


def equals(left: Any, right: Any) -> Optional[bool]:
    """
    Three-valued equality.

    Returns:
        None when either side is null (or a list comparison hits null),
        otherwise True/False.
    """
    if left is None or right is None:
        return None
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, bool) and isinstance(right, bool):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, list) and isinstance(right, list):
        if len(left) != len(right):
            return False
        result: Optional[bool] = True
        for a, b in zip(left, right):
            item = equals(a, b)
            if item is False:
                return False
            if item is None:
                result = None
        return result
    if isinstance(left, Node) and isinstance(right, Node):
        return left.id == right.id
    if isinstance(left, Relationship) and isinstance(right, Relationship):
        return left.id == right.id
    if isinstance(left, dict) and isinstance(right, dict):
        if set(left) != set(right):
            return False
        return equals([left[k] for k in sorted(left)], [right[k] for k in sorted(right)])
    return False


def compare(operator: BinaryOperator, left: Any, right: Any) -> Optional[bool]:
    """
    Ordering comparison (<, <=, >, >=).

    Only numbers with numbers, strings with strings and booleans with
    booleans are comparable. Anything else, including null, yields null.
    """
    if left is None or right is None:
        return None
    comparable = (
        (is_number(left) and is_number(right))
        or (isinstance(left, str) and isinstance(right, str))
        or (isinstance(left, bool) and isinstance(right, bool))
    )
    if not comparable:
        return None
    if isinstance(left, float) and math.isnan(left) or isinstance(right, float) and math.isnan(right):
        return False
    if operator is BinaryOperator.LESS_THAN:
        return left < right
    if operator is BinaryOperator.LESS_EQUAL:
        return left <= right
    if operator is BinaryOperator.GREATER_THAN:
        return left > right
    if operator is BinaryOperator.GREATER_EQUAL:
        return left >= right
    raise ValueError(f"Not an ordering operator: {operator}")


def _check_boolean(value: Any, context: str) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    raise EvaluationTypeError(f"{context} expects a Boolean, got {type_name(value)}")


def _logical(operator: BinaryOperator, left: Optional[bool], right: Optional[bool]) -> Optional[bool]:
    if operator is BinaryOperator.AND:
        if left is False or right is False:
            return False
        if left is None or right is None:
            return None
        return True
    if operator is BinaryOperator.OR:
        if left is True or right is True:
            return True
        if left is None or right is None:
            return None
        return False
    # XOR
    if left is None or right is None:
        return None
    return left != right


def _integer_divide(left: int, right: int) -> int:
    if right == 0:
        raise EvaluationError("/ by zero")
    quotient = abs(left) // abs(right)
    return quotient if (left >= 0) == (right >= 0) else -quotient


def _integer_modulo(left: int, right: int) -> int:
    if right == 0:
        raise EvaluationError("% by zero")
    remainder = abs(left) % abs(right)
    return remainder if left >= 0 else -remainder


def _arithmetic(operator: BinaryOperator, left: Any, right: Any) -> Any:
    if left is None or right is None:
        return None

    if operator is BinaryOperator.ADD:
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        if isinstance(left, str) and is_number(right):
            return left + to_string(right)
        if is_number(left) and isinstance(right, str):
            return to_string(left) + right
        if isinstance(left, list) and isinstance(right, list):
            return left + right
        if isinstance(left, list):
            return left + [right]
        if isinstance(right, list):
            return [left] + right

    if not (is_number(left) and is_number(right)):
        raise EvaluationTypeError(
            f"Cannot apply '{operator.value}' to {type_name(left)} and {type_name(right)}"
        )

    both_int = isinstance(left, int) and isinstance(right, int)

    if operator is BinaryOperator.ADD:
        return left + right
    if operator is BinaryOperator.SUBTRACT:
        return left - right
    if operator is BinaryOperator.MULTIPLY:
        return left * right
    if operator is BinaryOperator.DIVIDE:
        if both_int:
            return _integer_divide(left, right)
        if right == 0:
            if left == 0 or math.isnan(left):
                return math.nan
            return math.copysign(math.inf, left) * math.copysign(1.0, right)
        return left / right
    if operator is BinaryOperator.MODULO:
        if both_int:
            return _integer_modulo(left, right)
        if right == 0:
            return math.nan
        return math.fmod(left, right)
    if operator is BinaryOperator.POWER:
        try:
            return math.pow(left, right)
        except OverflowError:
            return math.inf
        except ValueError:
            return math.nan
    raise ValueError(f"Not an arithmetic operator: {operator}")


def _membership(value: Any, candidates: Any) -> Optional[bool]:
    if candidates is None:
        return None
    if not isinstance(candidates, list):
        raise EvaluationTypeError(f"IN expects a List, got {type_name(candidates)}")
    if not candidates:
        return False
    if value is None:
        return None
    saw_null = False
    for candidate in candidates:
        outcome = equals(value, candidate)
        if outcome is True:
            return True
        if outcome is None:
            saw_null = True
    return None if saw_null else False


# =============================================================================
# SCALAR FUNCTIONS
# =============================================================================

def _fn_coalesce(args: List[Any]) -> Any:
    for value in args:
        if value is not None:
            return value
    return None


def _single_argument(name: str, args: List[Any]) -> Any:
    if len(args) != 1:
        raise EvaluationError(f"{name}() takes exactly 1 argument ({len(args)} given)")
    return args[0]


def _fn_to_string(args: List[Any]) -> Any:
    return to_string(_single_argument("toString", args))


def _string_function(name: str, transform: Callable[[str], str]) -> Callable[[List[Any]], Any]:
    def apply(args: List[Any]) -> Any:
        value = _single_argument(name, args)
        if value is None:
            return None
        if not isinstance(value, str):
            raise EvaluationTypeError(f"{name}() expects a String, got {type_name(value)}")
        return transform(value)
    return apply


def _fn_abs(args: List[Any]) -> Any:
    value = _single_argument("abs", args)
    if value is None:
        return None
    if not is_number(value):
        raise EvaluationTypeError(f"abs() expects a number, got {type_name(value)}")
    return abs(value)


def _fn_size(args: List[Any]) -> Any:
    value = _single_argument("size", args)
    if value is None:
        return None
    if isinstance(value, (str, list)):
        return len(value)
    raise EvaluationTypeError(f"size() expects a String or List, got {type_name(value)}")


def _fn_labels(args: List[Any]) -> Any:
    value = _single_argument("labels", args)
    if value is None:
        return None
    if not isinstance(value, Node):
        raise EvaluationTypeError(f"labels() expects a Node, got {type_name(value)}")
    return list(value.labels)


def _fn_type(args: List[Any]) -> Any:
    value = _single_argument("type", args)
    if value is None:
        return None
    if not isinstance(value, Relationship):
        raise EvaluationTypeError(f"type() expects a Relationship, got {type_name(value)}")
    return value.type


def _fn_id(args: List[Any]) -> Any:
    value = _single_argument("id", args)
    if value is None:
        return None
    if not isinstance(value, (Node, Relationship)):
        raise EvaluationTypeError(f"id() expects a Node or Relationship, got {type_name(value)}")
    return value.id


# Keys are lower-case; function names are case-insensitive.
FUNCTIONS: Dict[str, Callable[[List[Any]], Any]] = {
    "coalesce": _fn_coalesce,
    "tostring": _fn_to_string,
    "toupper": _string_function("toUpper", str.upper),
    "tolower": _string_function("toLower", str.lower),
    "abs": _fn_abs,
    "size": _fn_size,
    "labels": _fn_labels,
    "type": _fn_type,
    "id": _fn_id,
}


# =============================================================================
# EVALUATOR
# =============================================================================

class Evaluator:
    """
    Evaluates expressions against rows.

    Args:
        parameters: Values for ``$name`` parameters (optional)

    Example:
        >>> Evaluator().evaluate(parse_expression("CASE 1 WHEN 1 THEN 'one' END"), {})
        'one'
    """

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None):
        self.parameters: Dict[str, Any] = dict(parameters or {})

    def evaluate(self, expr: Expression, row: Row) -> Any:
        if isinstance(expr, Literal):
            return expr.value

        if isinstance(expr, VariableReference):
            if expr.name not in row:
                raise UnboundVariableError(f"Variable `{expr.name}` not defined")
            return row[expr.name]

        if isinstance(expr, Parameter):
            if expr.name not in self.parameters:
                raise UnboundParameterError(f"Expected parameter ${expr.name}")
            return self.parameters[expr.name]

        if isinstance(expr, PropertyAccess):
            return self._property(self.evaluate(expr.subject, row), expr.key)

        if isinstance(expr, ListLiteral):
            return [self.evaluate(item, row) for item in expr.items]

        if isinstance(expr, CaseExpression):
            return self._evaluate_case(expr, row)

        if isinstance(expr, UnaryExpression):
            return self._evaluate_unary(expr, row)

        if isinstance(expr, BinaryExpression):
            return self._evaluate_binary(expr, row)

        if isinstance(expr, FunctionCall):
            function = FUNCTIONS.get(expr.name.lower())
            if function is None:
                raise UnknownFunctionError(f"Unknown function '{expr.name}'")
            return function([self.evaluate(arg, row) for arg in expr.arguments])

        raise TypeError(f"Unsupported Expression type: {type(expr)}")

    def evaluate_predicate(self, expr: Expression, row: Row) -> bool:
        """
        Evaluate a WHERE predicate; only a strictly true result passes.

        Raises:
            EvaluationTypeError: If the predicate yields a non-boolean value
        """
        return _check_boolean(self.evaluate(expr, row), "WHERE") is True

    def _evaluate_case(self, expr: CaseExpression, row: Row) -> Any:
        if expr.is_simple:
            test = self.evaluate(expr.test, row)
            for alternative in expr.alternatives:
                candidate = self.evaluate(alternative.when, row)
                if equals(test, candidate) is True:
                    return self.evaluate(alternative.then, row)
        else:
            for alternative in expr.alternatives:
                outcome = _check_boolean(self.evaluate(alternative.when, row), "CASE WHEN")
                if outcome is True:
                    return self.evaluate(alternative.then, row)

        if expr.default is None:
            return None
        return self.evaluate(expr.default, row)

    def _evaluate_unary(self, expr: UnaryExpression, row: Row) -> Any:
        value = self.evaluate(expr.operand, row)
        op = expr.operator
        if op is UnaryOperator.IS_NULL:
            return value is None
        if op is UnaryOperator.IS_NOT_NULL:
            return value is not None
        if op is UnaryOperator.NOT:
            value = _check_boolean(value, "NOT")
            return None if value is None else not value
        if op is UnaryOperator.NEGATE:
            if value is None:
                return None
            if not is_number(value):
                raise EvaluationTypeError(f"Cannot negate {type_name(value)}")
            return -value
        raise ValueError(f"Unsupported unary operator: {op}")

    def _evaluate_binary(self, expr: BinaryExpression, row: Row) -> Any:
        op = expr.operator
        left = self.evaluate(expr.left, row)
        right = self.evaluate(expr.right, row)

        if op in LOGICAL_OPERATORS:
            return _logical(
                op,
                _check_boolean(left, op.value),
                _check_boolean(right, op.value),
            )
        if op is BinaryOperator.EQUALS:
            return equals(left, right)
        if op is BinaryOperator.NOT_EQUALS:
            outcome = equals(left, right)
            return None if outcome is None else not outcome
        if op in COMPARISON_OPERATORS:
            return compare(op, left, right)
        if op is BinaryOperator.IN:
            return _membership(left, right)
        if op in ARITHMETIC_OPERATORS:
            return _arithmetic(op, left, right)
        raise ValueError(f"Unsupported binary operator: {op}")

    @staticmethod
    def _property(subject: Any, key: str) -> Any:
        if subject is None:
            return None
        if isinstance(subject, (Node, Relationship)):
            return subject.get(key)
        if isinstance(subject, dict):
            return subject.get(key)
        raise EvaluationTypeError(f"Type mismatch: expected a map, node or relationship but was {type_name(subject)}")


def evaluate(expr: Expression, row: Optional[Row] = None, parameters: Optional[Mapping[str, Any]] = None) -> Any:
    """Evaluate ``expr`` once against ``row`` (empty by default)."""
    return Evaluator(parameters).evaluate(expr, row or {})


__all__ = [
    "Evaluator",
    "evaluate",
    "equals",
    "compare",
    "is_number",
    "to_string",
    "type_name",
    "FUNCTIONS",
]
