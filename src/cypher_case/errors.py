"""
Exception hierarchy for cypher-case.

Null-producing conditions (missing properties, unmatched CASE without
ELSE, comparisons against null) are never errors. Errors are reserved for
malformed query text and for operations the language rejects outright.
"""


class CypherCaseError(Exception):
    """Base class for all errors raised by this package."""
    pass


class QuerySyntaxError(CypherCaseError):
    """Raised when query or expression text cannot be parsed."""

    def __init__(self, message: str, position: int = -1):
        self.position = position
        if position >= 0:
            message = f"{message} (at offset {position})"
        super().__init__(message)


class EvaluationError(CypherCaseError):
    """Raised when an expression cannot be evaluated against a row."""
    pass


class EvaluationTypeError(EvaluationError):
    """Raised when an operator receives operands of an unsupported type."""
    pass


class UnboundVariableError(EvaluationError):
    """Raised when an expression references a variable not bound in the row."""
    pass


class UnboundParameterError(EvaluationError):
    """Raised when a ``$parameter`` has no supplied value."""
    pass


class UnknownFunctionError(EvaluationError):
    """Raised when a function name is not registered."""
    pass
