"""
Query Parser (query text -> expression / query AST).

Grammar (keywords are case-insensitive):

    query       := MATCH pattern [WHERE expr] clause* RETURN projection [';']
    clause      := MATCH pattern [WHERE expr]
                 | WITH projection [WHERE expr]
                 | SET set_item {',' set_item}
    projection  := [DISTINCT] item {',' item}
                   [ORDER BY sort {',' sort}] [SKIP expr] [LIMIT expr]
    item        := expr [AS name]
    pattern     := node {relationship node}

Expression precedence, lowest first:
    OR, XOR, AND, NOT, comparison / IN / IS [NOT] NULL,
    + -, * / %, ^, unary minus, property access, atom

Syntax Notes:
    - Strings use single or double quotes with backslash escapes
    - '!=' is accepted as '<>' with a warning
    - '//' starts a comment running to end of line
    - Backtick-quoted names may be reserved words
"""

import re
import warnings
from dataclasses import dataclass
from typing import List, Tuple

from cypher_case.errors import QuerySyntaxError
from cypher_case.expressions import (
    BinaryExpression,
    BinaryOperator,
    CaseAlternative,
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
from cypher_case.query import (
    Direction,
    MatchClause,
    NodePattern,
    Pattern,
    Projection,
    ProjectionItem,
    Query,
    RelationshipPattern,
    ReturnClause,
    SetClause,
    SetItem,
    SortItem,
    WithClause,
)


RESERVED_WORDS = frozenset({
    "MATCH", "WHERE", "WITH", "RETURN", "SET", "ORDER", "BY", "SKIP", "LIMIT",
    "AS", "DISTINCT", "ASC", "ASCENDING", "DESC", "DESCENDING",
    "CASE", "WHEN", "THEN", "ELSE", "END",
    "AND", "OR", "XOR", "NOT", "IN", "IS", "NULL", "TRUE", "FALSE",
})

_COMPARISON_TOKENS = {
    "=": BinaryOperator.EQUALS,
    "<>": BinaryOperator.NOT_EQUALS,
    "!=": BinaryOperator.NOT_EQUALS,
    "<": BinaryOperator.LESS_THAN,
    ">": BinaryOperator.GREATER_THAN,
    "<=": BinaryOperator.LESS_EQUAL,
    ">=": BinaryOperator.GREATER_EQUAL,
}

_TOKEN_RE = re.compile(r"""
      (?P<ws>\s+|//[^\n]*)
    | (?P<float>(?:\d+\.\d+|\.\d+)(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+)
    | (?P<int>\d+)
    | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<param>\$[A-Za-z_][A-Za-z0-9_]*)
    | (?P<ident>[A-Za-z_][A-Za-z0-9_]*|`[^`]+`)
    | (?P<symbol><>|<=|>=|!=|[-+*/%^=<>(),.:;\[\]{}|])
""", re.VERBOSE | re.DOTALL)

_NAME_TOKENS = ("ident", "quoted_ident")

_ESCAPES = {
    "\\": "\\",
    "'": "'",
    '"': '"',
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
}


@dataclass(frozen=True)
class Token:
    """A lexical token; ``end`` is the offset just past its last character."""
    kind: str
    text: str
    position: int
    end: int


def _unescape(body: str, position: int) -> str:
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
            i += 2
        elif nxt in "uU" and re.match(r"[0-9a-fA-F]{4}$", body[i + 2:i + 6]):
            out.append(chr(int(body[i + 2:i + 6], 16)))
            i += 6
        else:
            raise QuerySyntaxError(f"Invalid escape sequence '\\{nxt}'", position + i)
    return "".join(out)


def tokenize(text: str) -> List[Token]:
    """
    Split query text into tokens.

    Whitespace and comments are dropped. String tokens carry the unescaped
    value. Backtick-quoted names become ``quoted_ident`` tokens without the
    backticks; they are never keywords. The list always ends with an EOF token.

    Raises:
        QuerySyntaxError: On a character that starts no valid token
    """
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise QuerySyntaxError(f"Unexpected character {text[pos]!r}", pos)
        kind = m.lastgroup
        raw = m.group()
        if kind == "string":
            tokens.append(Token("string", _unescape(raw[1:-1], pos + 1), pos, m.end()))
        elif kind == "ident" and raw.startswith("`"):
            tokens.append(Token("quoted_ident", raw[1:-1], pos, m.end()))
        elif kind == "param":
            tokens.append(Token("param", raw[1:], pos, m.end()))
        elif kind != "ws":
            tokens.append(Token(kind, raw, pos, m.end()))
        pos = m.end()
    tokens.append(Token("eof", "", len(text), len(text)))
    return tokens


# =============================================================================
# TOKEN HELPERS
# =============================================================================

def _is_keyword(tokens: List[Token], pos: int, *words: str) -> bool:
    tok = tokens[pos]
    return tok.kind == "ident" and tok.text.upper() in words


def _is_symbol(tokens: List[Token], pos: int, *symbols: str) -> bool:
    tok = tokens[pos]
    return tok.kind == "symbol" and tok.text in symbols


def _describe(tok: Token) -> str:
    return "end of input" if tok.kind == "eof" else repr(tok.text)


def _expect_keyword(tokens: List[Token], pos: int, word: str) -> int:
    if not _is_keyword(tokens, pos, word):
        raise QuerySyntaxError(f"Expected {word}, got {_describe(tokens[pos])}", tokens[pos].position)
    return pos + 1


def _expect_symbol(tokens: List[Token], pos: int, symbol: str) -> int:
    if not _is_symbol(tokens, pos, symbol):
        raise QuerySyntaxError(f"Expected '{symbol}', got {_describe(tokens[pos])}", tokens[pos].position)
    return pos + 1


def _expect_name(tokens: List[Token], pos: int, what: str, allow_reserved: bool = False) -> Tuple[str, int]:
    tok = tokens[pos]
    if tok.kind == "quoted_ident":
        return tok.text, pos + 1
    if tok.kind != "ident" or (not allow_reserved and tok.text.upper() in RESERVED_WORDS):
        raise QuerySyntaxError(f"Expected {what}, got {_describe(tok)}", tok.position)
    return tok.text, pos + 1


# =============================================================================
# EXPRESSIONS
# =============================================================================

def _parse_or_expression(tokens: List[Token], pos: int) -> tuple:
    """Parse OR expression (lowest precedence)."""
    left, pos = _parse_xor_expression(tokens, pos)
    while _is_keyword(tokens, pos, "OR"):
        right, pos = _parse_xor_expression(tokens, pos + 1)
        left = BinaryExpression(BinaryOperator.OR, left, right)
    return left, pos


def _parse_xor_expression(tokens: List[Token], pos: int) -> tuple:
    left, pos = _parse_and_expression(tokens, pos)
    while _is_keyword(tokens, pos, "XOR"):
        right, pos = _parse_and_expression(tokens, pos + 1)
        left = BinaryExpression(BinaryOperator.XOR, left, right)
    return left, pos


def _parse_and_expression(tokens: List[Token], pos: int) -> tuple:
    left, pos = _parse_not_expression(tokens, pos)
    while _is_keyword(tokens, pos, "AND"):
        right, pos = _parse_not_expression(tokens, pos + 1)
        left = BinaryExpression(BinaryOperator.AND, left, right)
    return left, pos


def _parse_not_expression(tokens: List[Token], pos: int) -> tuple:
    if _is_keyword(tokens, pos, "NOT"):
        operand, pos = _parse_not_expression(tokens, pos + 1)
        return UnaryExpression(UnaryOperator.NOT, operand), pos
    return _parse_comparison_expression(tokens, pos)


def _parse_comparison_expression(tokens: List[Token], pos: int) -> tuple:
    """
    Parse comparison expression (=, <>, <, >, <=, >=).

    Chained comparisons ``a < b < c`` become ``a < b AND b < c``.
    """
    left, pos = _parse_null_predicate_expression(tokens, pos)
    comparisons: List[Expression] = []

    while tokens[pos].kind == "symbol" and tokens[pos].text in _COMPARISON_TOKENS:
        tok = tokens[pos]
        if tok.text == "!=":
            warnings.warn(
                f"'!=' at offset {tok.position} is not standard syntax; treating it as '<>'",
                UserWarning,
            )
        right, pos = _parse_null_predicate_expression(tokens, pos + 1)
        comparisons.append(BinaryExpression(_COMPARISON_TOKENS[tok.text], left, right))
        left = right

    if not comparisons:
        return left, pos
    result = comparisons[0]
    for comparison in comparisons[1:]:
        result = BinaryExpression(BinaryOperator.AND, result, comparison)
    return result, pos


def _parse_null_predicate_expression(tokens: List[Token], pos: int) -> tuple:
    """Parse postfix IS [NOT] NULL and IN predicates."""
    left, pos = _parse_additive_expression(tokens, pos)
    while True:
        if _is_keyword(tokens, pos, "IS"):
            pos += 1
            negated = False
            if _is_keyword(tokens, pos, "NOT"):
                negated = True
                pos += 1
            pos = _expect_keyword(tokens, pos, "NULL")
            op = UnaryOperator.IS_NOT_NULL if negated else UnaryOperator.IS_NULL
            left = UnaryExpression(op, left)
        elif _is_keyword(tokens, pos, "IN"):
            right, pos = _parse_additive_expression(tokens, pos + 1)
            left = BinaryExpression(BinaryOperator.IN, left, right)
        else:
            return left, pos


def _parse_additive_expression(tokens: List[Token], pos: int) -> tuple:
    left, pos = _parse_multiplicative_expression(tokens, pos)
    while _is_symbol(tokens, pos, "+", "-"):
        op = BinaryOperator.ADD if tokens[pos].text == "+" else BinaryOperator.SUBTRACT
        right, pos = _parse_multiplicative_expression(tokens, pos + 1)
        left = BinaryExpression(op, left, right)
    return left, pos


def _parse_multiplicative_expression(tokens: List[Token], pos: int) -> tuple:
    op_map = {"*": BinaryOperator.MULTIPLY, "/": BinaryOperator.DIVIDE, "%": BinaryOperator.MODULO}
    left, pos = _parse_power_expression(tokens, pos)
    while _is_symbol(tokens, pos, "*", "/", "%"):
        op = op_map[tokens[pos].text]
        right, pos = _parse_power_expression(tokens, pos + 1)
        left = BinaryExpression(op, left, right)
    return left, pos


def _parse_power_expression(tokens: List[Token], pos: int) -> tuple:
    left, pos = _parse_unary_expression(tokens, pos)
    while _is_symbol(tokens, pos, "^"):
        right, pos = _parse_unary_expression(tokens, pos + 1)
        left = BinaryExpression(BinaryOperator.POWER, left, right)
    return left, pos


def _parse_unary_expression(tokens: List[Token], pos: int) -> tuple:
    """Parse unary minus/plus; negative numeric literals fold into the literal."""
    if _is_symbol(tokens, pos, "-"):
        operand, pos = _parse_unary_expression(tokens, pos + 1)
        if isinstance(operand, Literal) and isinstance(operand.value, (int, float)) \
                and not isinstance(operand.value, bool):
            return Literal(-operand.value), pos
        return UnaryExpression(UnaryOperator.NEGATE, operand), pos
    if _is_symbol(tokens, pos, "+"):
        return _parse_unary_expression(tokens, pos + 1)
    return _parse_postfix_expression(tokens, pos)


def _parse_postfix_expression(tokens: List[Token], pos: int) -> tuple:
    expr, pos = _parse_primary_expression(tokens, pos)
    while _is_symbol(tokens, pos, "."):
        key, pos = _expect_name(tokens, pos + 1, "property name", allow_reserved=True)
        expr = PropertyAccess(expr, key)
    return expr, pos


def _parse_primary_expression(tokens: List[Token], pos: int) -> tuple:
    """Parse literal, parameter, variable, function call, list, CASE or parenthesized."""
    tok = tokens[pos]

    if tok.kind == "eof":
        raise QuerySyntaxError("Unexpected end of expression", tok.position)

    if tok.kind == "int":
        return Literal(int(tok.text)), pos + 1

    if tok.kind == "float":
        return Literal(float(tok.text)), pos + 1

    if tok.kind == "string":
        return Literal(tok.text), pos + 1

    if tok.kind == "param":
        return Parameter(tok.text), pos + 1

    if _is_symbol(tokens, pos, "("):
        expr, pos = _parse_or_expression(tokens, pos + 1)
        pos = _expect_symbol(tokens, pos, ")")
        return expr, pos

    if _is_symbol(tokens, pos, "["):
        return _parse_list_literal(tokens, pos)

    if tok.kind == "quoted_ident":
        if _is_symbol(tokens, pos + 1, "("):
            return _parse_function_call(tokens, pos)
        return VariableReference(tok.text), pos + 1

    if tok.kind == "ident":
        word = tok.text.upper()
        if word == "NULL":
            return Literal(None), pos + 1
        if word == "TRUE":
            return Literal(True), pos + 1
        if word == "FALSE":
            return Literal(False), pos + 1
        if word == "CASE":
            return _parse_case_expression(tokens, pos + 1)
        if _is_symbol(tokens, pos + 1, "("):
            return _parse_function_call(tokens, pos)
        if word in RESERVED_WORDS:
            raise QuerySyntaxError(f"Unexpected keyword {tok.text}", tok.position)
        return VariableReference(tok.text), pos + 1

    raise QuerySyntaxError(f"Unexpected token {_describe(tok)}", tok.position)


def _parse_list_literal(tokens: List[Token], pos: int) -> tuple:
    pos = _expect_symbol(tokens, pos, "[")
    items: List[Expression] = []
    if not _is_symbol(tokens, pos, "]"):
        while True:
            item, pos = _parse_or_expression(tokens, pos)
            items.append(item)
            if _is_symbol(tokens, pos, ","):
                pos += 1
                continue
            break
    pos = _expect_symbol(tokens, pos, "]")
    return ListLiteral(tuple(items)), pos


def _parse_function_call(tokens: List[Token], pos: int) -> tuple:
    name = tokens[pos].text
    pos = _expect_symbol(tokens, pos + 1, "(")
    arguments: List[Expression] = []
    if not _is_symbol(tokens, pos, ")"):
        while True:
            arg, pos = _parse_or_expression(tokens, pos)
            arguments.append(arg)
            if _is_symbol(tokens, pos, ","):
                pos += 1
                continue
            if not _is_symbol(tokens, pos, ")"):
                raise QuerySyntaxError(
                    f"Expected ',' or ')' in function call, got {_describe(tokens[pos])}",
                    tokens[pos].position,
                )
            break
    pos = _expect_symbol(tokens, pos, ")")
    return FunctionCall(name, tuple(arguments)), pos


def _parse_case_expression(tokens: List[Token], pos: int) -> tuple:
    """
    Parse the remainder of a CASE expression (after the CASE keyword).

    A test expression before the first WHEN selects the simple form.
    """
    start = tokens[pos - 1].position
    test = None
    if not _is_keyword(tokens, pos, "WHEN"):
        test, pos = _parse_or_expression(tokens, pos)

    alternatives: List[CaseAlternative] = []
    while _is_keyword(tokens, pos, "WHEN"):
        when, pos = _parse_or_expression(tokens, pos + 1)
        pos = _expect_keyword(tokens, pos, "THEN")
        then, pos = _parse_or_expression(tokens, pos)
        alternatives.append(CaseAlternative(when=when, then=then))

    if not alternatives:
        raise QuerySyntaxError("CASE requires at least one WHEN ... THEN alternative", start)

    default = None
    if _is_keyword(tokens, pos, "ELSE"):
        default, pos = _parse_or_expression(tokens, pos + 1)

    pos = _expect_keyword(tokens, pos, "END")
    return CaseExpression(alternatives=tuple(alternatives), test=test, default=default), pos


def parse_expression(text: str) -> Expression:
    """
    Parse a standalone expression.

    Args:
        text: Expression text, e.g. "CASE n.eyes WHEN 'blue' THEN 1 END"

    Returns:
        Expression AST

    Raises:
        QuerySyntaxError: If syntax is invalid or input remains
    """
    tokens = tokenize(text)
    expr, pos = _parse_or_expression(tokens, 0)
    if tokens[pos].kind != "eof":
        raise QuerySyntaxError(f"Unexpected tokens after expression: {_describe(tokens[pos])}", tokens[pos].position)
    return expr


# =============================================================================
# PATTERNS
# =============================================================================

def _parse_property_map(tokens: List[Token], pos: int) -> tuple:
    pos = _expect_symbol(tokens, pos, "{")
    entries: List[Tuple[str, Expression]] = []
    if not _is_symbol(tokens, pos, "}"):
        while True:
            key, pos = _expect_name(tokens, pos, "property name", allow_reserved=True)
            pos = _expect_symbol(tokens, pos, ":")
            value, pos = _parse_or_expression(tokens, pos)
            entries.append((key, value))
            if _is_symbol(tokens, pos, ","):
                pos += 1
                continue
            break
    pos = _expect_symbol(tokens, pos, "}")
    return tuple(entries), pos


def _parse_node_pattern(tokens: List[Token], pos: int) -> tuple:
    pos = _expect_symbol(tokens, pos, "(")
    variable = None
    if tokens[pos].kind in _NAME_TOKENS:
        variable, pos = _expect_name(tokens, pos, "variable name")
    labels: List[str] = []
    while _is_symbol(tokens, pos, ":"):
        label, pos = _expect_name(tokens, pos + 1, "label", allow_reserved=True)
        labels.append(label)
    properties: tuple = ()
    if _is_symbol(tokens, pos, "{"):
        properties, pos = _parse_property_map(tokens, pos)
    pos = _expect_symbol(tokens, pos, ")")
    return NodePattern(variable=variable, labels=tuple(labels), properties=properties), pos


def _parse_relationship_pattern(tokens: List[Token], pos: int) -> tuple:
    start = tokens[pos].position
    incoming = False
    if _is_symbol(tokens, pos, "<"):
        incoming = True
        pos += 1
    pos = _expect_symbol(tokens, pos, "-")

    variable = None
    types: List[str] = []
    if _is_symbol(tokens, pos, "["):
        pos += 1
        if tokens[pos].kind in _NAME_TOKENS:
            variable, pos = _expect_name(tokens, pos, "variable name")
        if _is_symbol(tokens, pos, ":"):
            rel_type, pos = _expect_name(tokens, pos + 1, "relationship type", allow_reserved=True)
            types.append(rel_type)
            while _is_symbol(tokens, pos, "|"):
                pos += 1
                if _is_symbol(tokens, pos, ":"):
                    pos += 1
                rel_type, pos = _expect_name(tokens, pos, "relationship type", allow_reserved=True)
                types.append(rel_type)
        pos = _expect_symbol(tokens, pos, "]")

    pos = _expect_symbol(tokens, pos, "-")
    outgoing = False
    if _is_symbol(tokens, pos, ">"):
        outgoing = True
        pos += 1

    if incoming and outgoing:
        raise QuerySyntaxError("A relationship cannot point in both directions", start)
    if outgoing:
        direction = Direction.OUTGOING
    elif incoming:
        direction = Direction.INCOMING
    else:
        direction = Direction.BOTH
    return RelationshipPattern(variable=variable, types=tuple(types), direction=direction), pos


def _parse_pattern(tokens: List[Token], pos: int) -> tuple:
    node, pos = _parse_node_pattern(tokens, pos)
    nodes = [node]
    relationships: List[RelationshipPattern] = []
    while _is_symbol(tokens, pos, "-", "<"):
        rel, pos = _parse_relationship_pattern(tokens, pos)
        node, pos = _parse_node_pattern(tokens, pos)
        relationships.append(rel)
        nodes.append(node)
    return Pattern(nodes=tuple(nodes), relationships=tuple(relationships)), pos


# =============================================================================
# CLAUSES
# =============================================================================

_CLAUSE_KEYWORDS = ("MATCH", "WITH", "SET", "RETURN")


def _parse_projection_item(tokens: List[Token], pos: int, source: str) -> tuple:
    first = tokens[pos]
    expr, pos = _parse_or_expression(tokens, pos)
    text = source[first.position:tokens[pos - 1].end]
    alias = None
    if _is_keyword(tokens, pos, "AS"):
        alias, pos = _expect_name(tokens, pos + 1, "alias")
    return ProjectionItem(expression=expr, alias=alias, column_name=alias or text), pos


def _parse_projection(tokens: List[Token], pos: int, source: str) -> tuple:
    distinct = False
    if _is_keyword(tokens, pos, "DISTINCT"):
        distinct = True
        pos += 1

    items: List[ProjectionItem] = []
    while True:
        item, pos = _parse_projection_item(tokens, pos, source)
        items.append(item)
        if _is_symbol(tokens, pos, ","):
            pos += 1
            continue
        break

    names = [item.column_name for item in items]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise QuerySyntaxError(f"Multiple result columns with the same name: {duplicates}", tokens[pos].position)

    order_by: List[SortItem] = []
    if _is_keyword(tokens, pos, "ORDER"):
        pos = _expect_keyword(tokens, pos + 1, "BY")
        while True:
            expr, pos = _parse_or_expression(tokens, pos)
            descending = False
            if _is_keyword(tokens, pos, "DESC", "DESCENDING"):
                descending = True
                pos += 1
            elif _is_keyword(tokens, pos, "ASC", "ASCENDING"):
                pos += 1
            order_by.append(SortItem(expression=expr, descending=descending))
            if _is_symbol(tokens, pos, ","):
                pos += 1
                continue
            break

    skip = limit = None
    if _is_keyword(tokens, pos, "SKIP"):
        skip, pos = _parse_or_expression(tokens, pos + 1)
    if _is_keyword(tokens, pos, "LIMIT"):
        limit, pos = _parse_or_expression(tokens, pos + 1)

    projection = Projection(
        items=tuple(items),
        distinct=distinct,
        order_by=tuple(order_by),
        skip=skip,
        limit=limit,
    )
    return projection, pos


def _parse_optional_where(tokens: List[Token], pos: int) -> tuple:
    if _is_keyword(tokens, pos, "WHERE"):
        return _parse_or_expression(tokens, pos + 1)
    return None, pos


def _parse_set_clause(tokens: List[Token], pos: int) -> tuple:
    items: List[SetItem] = []
    while True:
        variable, pos = _expect_name(tokens, pos, "variable name")
        pos = _expect_symbol(tokens, pos, ".")
        key, pos = _expect_name(tokens, pos, "property name", allow_reserved=True)
        pos = _expect_symbol(tokens, pos, "=")
        value, pos = _parse_or_expression(tokens, pos)
        items.append(SetItem(variable=variable, key=key, value=value))
        if _is_symbol(tokens, pos, ","):
            pos += 1
            continue
        break
    return SetClause(items=tuple(items)), pos


def parse_query(text: str) -> Query:
    """
    Parse query text into a Query.

    Args:
        text: Query text starting with MATCH and ending with RETURN

    Returns:
        Query object

    Raises:
        QuerySyntaxError: If syntax is invalid
    """
    tokens = tokenize(text)
    pos = 0
    query = Query()

    if not _is_keyword(tokens, pos, "MATCH"):
        raise QuerySyntaxError(f"Query must start with MATCH, got {_describe(tokens[pos])}", tokens[pos].position)

    while not _is_keyword(tokens, pos, "RETURN"):
        tok = tokens[pos]
        if _is_keyword(tokens, pos, "MATCH"):
            pattern, pos = _parse_pattern(tokens, pos + 1)
            where, pos = _parse_optional_where(tokens, pos)
            query.clauses.append(MatchClause(pattern=pattern, where=where))
        elif _is_keyword(tokens, pos, "WITH"):
            projection, pos = _parse_projection(tokens, pos + 1, text)
            for item in projection.items:
                if item.alias is None and not isinstance(item.expression, VariableReference):
                    raise QuerySyntaxError(
                        f"Expression in WITH must be aliased (use AS): {item.column_name}",
                        tok.position,
                    )
            where, pos = _parse_optional_where(tokens, pos)
            query.clauses.append(WithClause(projection=projection, where=where))
        elif _is_keyword(tokens, pos, "SET"):
            clause, pos = _parse_set_clause(tokens, pos + 1)
            query.clauses.append(clause)
        elif tok.kind == "eof":
            raise QuerySyntaxError("Query must end with RETURN", tok.position)
        else:
            raise QuerySyntaxError(
                f"Expected one of {', '.join(_CLAUSE_KEYWORDS)}, got {_describe(tok)}",
                tok.position,
            )

    projection, pos = _parse_projection(tokens, pos + 1, text)
    query.clauses.append(ReturnClause(projection=projection))

    if _is_symbol(tokens, pos, ";"):
        pos += 1
    if tokens[pos].kind != "eof":
        raise QuerySyntaxError(f"Unexpected tokens after RETURN: {_describe(tokens[pos])}", tokens[pos].position)
    return query


__all__ = [
    "parse_query",
    "parse_expression",
    "tokenize",
    "Token",
    "QuerySyntaxError",
]
