"""
Tests for the Expression System

These tests verify:
    - Expression objects can be created
    - Expression tree composition (including CASE)
    - Expression immutability
    - Pre-order traversal
"""

import pytest
from cypher_case.expressions import (
    ARITHMETIC_OPERATORS,
    COMPARISON_OPERATORS,
    LOGICAL_OPERATORS,
    Expression,
    BinaryExpression,
    BinaryOperator,
    CaseAlternative,
    CaseExpression,
    FunctionCall,
    ListLiteral,
    Literal,
    Parameter,
    PropertyAccess,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
    iter_subexpressions,
)


def eyes():
    return PropertyAccess(VariableReference("n"), "eyes")


class TestLeaves:
    """Test leaf expressions."""

    def test_variable_reference(self):
        """Should create a reference to a named variable."""
        ref = VariableReference("n")
        assert ref.name == "n"
        assert isinstance(ref, Expression)

    def test_null_literal(self):
        """null is a literal whose value is None."""
        assert Literal(None).value is None

    def test_literal_kinds(self):
        """Literals hold ints, floats, strings and booleans."""
        for value in (5, 3.5, "blue", True):
            assert Literal(value).value == value

    def test_parameter(self):
        assert Parameter("limit").name == "limit"

    def test_literal_immutable(self):
        """Literals should be immutable."""
        lit = Literal(5)
        with pytest.raises(AttributeError):
            lit.value = 10


class TestCompositeExpressions:
    """Test property access, operators, lists and function calls."""

    def test_operator_groups_cover_every_binary_operator(self):
        groups = [LOGICAL_OPERATORS, COMPARISON_OPERATORS, ARITHMETIC_OPERATORS, {BinaryOperator.IN}]
        assert set().union(*groups) == set(BinaryOperator)
        assert sum(len(g) for g in groups) == len(BinaryOperator)

    def test_property_access(self):
        expr = eyes()
        assert expr.key == "eyes"
        assert expr.subject == VariableReference("n")

    def test_binary_expression(self):
        """Should create equality comparison."""
        expr = BinaryExpression(BinaryOperator.EQUALS, eyes(), Literal("blue"))
        assert expr.operator is BinaryOperator.EQUALS
        assert expr.operator.value == "="

    def test_is_null_operator(self):
        expr = UnaryExpression(UnaryOperator.IS_NULL, PropertyAccess(VariableReference("n"), "age"))
        assert expr.operator.value == "IS NULL"

    def test_structural_equality(self):
        """Two separately built trees with the same shape are equal."""
        assert eyes() == eyes()
        assert hash(eyes()) == hash(eyes())

    def test_list_and_call(self):
        call = FunctionCall("coalesce", (eyes(), Literal("unknown")))
        assert len(call.arguments) == 2
        assert ListLiteral((Literal(1), Literal(2))).items[1] == Literal(2)

    def test_binary_expression_immutable(self):
        expr = BinaryExpression(BinaryOperator.EQUALS, VariableReference("x"), Literal(1))
        with pytest.raises(AttributeError):
            expr.operator = BinaryOperator.OR


class TestCaseExpression:
    """Test CASE structure."""

    def test_simple_form(self):
        """A test expression makes the CASE simple."""
        case = CaseExpression(
            alternatives=(
                CaseAlternative(Literal("blue"), Literal(1)),
                CaseAlternative(Literal("brown"), Literal(2)),
            ),
            test=eyes(),
            default=Literal(3),
        )
        assert case.is_simple
        assert len(case.alternatives) == 2

    def test_generic_form(self):
        """Without a test expression the CASE is generic."""
        case = CaseExpression(
            alternatives=(
                CaseAlternative(BinaryExpression(BinaryOperator.EQUALS, eyes(), Literal("blue")), Literal(1)),
            ),
        )
        assert not case.is_simple
        assert case.default is None

    def test_no_else_differs_from_else_null(self):
        """Missing ELSE and ELSE null are distinct trees."""
        alts = (CaseAlternative(Literal(1), Literal("one")),)
        assert CaseExpression(alts, test=Literal(1)) != CaseExpression(alts, test=Literal(1), default=Literal(None))

    def test_case_immutable(self):
        case = CaseExpression((CaseAlternative(Literal(True), Literal(1)),))
        with pytest.raises(AttributeError):
            case.default = Literal(0)


class TestIterSubexpressions:
    """Test pre-order traversal."""

    def test_none_yields_nothing(self):
        assert list(iter_subexpressions(None)) == []

    def test_walks_case_in_order(self):
        case = CaseExpression(
            alternatives=(CaseAlternative(Literal("blue"), Literal(1)),),
            test=eyes(),
            default=Literal(3),
        )
        nodes = list(iter_subexpressions(case))
        assert nodes[0] is case
        assert nodes[1:] == [eyes(), VariableReference("n"), Literal("blue"), Literal(1), Literal(3)]

    def test_finds_nested_case(self):
        inner = CaseExpression((CaseAlternative(Literal(True), Literal("x")),))
        outer = CaseExpression((CaseAlternative(Literal(False), inner),), default=Literal("y"))
        cases = [e for e in iter_subexpressions(outer) if isinstance(e, CaseExpression)]
        assert cases == [outer, inner]
